"""Builder store, platform and build flag parsing, progress events and IO helpers for image builds."""

__version__ = "0.1.0"