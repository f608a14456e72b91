"""Parsing of ``--secret`` flag values."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Iterable


@dataclass
class SecretSource:
    """Where a build secret comes from: a file or an environment variable."""

    id: str = ""
    file_path: str = ""
    env: str = ""


def _csv_fields(value: str) -> list[str]:
    reader = csv.reader(io.StringIO(value), strict=True)
    try:
        for fields in reader:
            if fields:
                return fields
    except csv.Error as exc:
        raise ValueError(f"failed to parse csv secret: {exc}") from exc
    raise ValueError("failed to parse csv secret: EOF")


def parse_secret(value: str) -> SecretSource:
    """Parse one ``id=...,src=...`` secret specification."""
    fields = _csv_fields(value)
    source = SecretSource()
    kind = ""
    for f in fields:
        key, sep, val = f.partition("=")
        key = key.lower()
        if not sep:
            raise ValueError(f"invalid field '{f}' must be a key=value pair")
        if key == "type":
            if val not in ("file", "env"):
                raise ValueError(f"unsupported secret type {val!r}")
            kind = val
        elif key == "id":
            source.id = val
        elif key in ("source", "src"):
            source.file_path = val
        elif key == "env":
            source.env = val
        else:
            raise ValueError(f"unexpected key '{key}' in '{f}'")
    if kind == "env" and not source.env:
        source.env, source.file_path = source.file_path, ""
    return source


def parse_secret_specs(values: Iterable[str]) -> list[SecretSource]:
    """Parse every secret specification."""
    return [parse_secret(v) for v in values]