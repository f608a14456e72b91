"""Parsers for cache, output, secret, SSH and entitlement build flag values."""