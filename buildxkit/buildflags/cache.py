"""Parsing of ``--cache-from`` / ``--cache-to`` flag values."""

from __future__ import annotations

import csv
import io
import os
from dataclasses import dataclass, field
from typing import Iterable


@dataclass
class CacheOptionsEntry:
    """One cache import or export: a backend type and its attributes."""

    type: str = ""
    attrs: dict[str, str] = field(default_factory=dict)


def _csv_fields(value: str) -> list[str]:
    reader = csv.reader(io.StringIO(value), strict=True)
    try:
        for fields in reader:
            if fields:
                return fields
    except csv.Error as exc:
        raise ValueError(str(exc)) from exc
    raise ValueError("EOF")


def _is_ref_only(fields: list[str]) -> bool:
    return all("=" not in f for f in fields)


def _add_github_token(entry: CacheOptionsEntry) -> bool:
    """Fill GitHub Actions credentials from the environment; False if still missing."""
    if entry.type != "gha":
        return True
    if "token" not in entry.attrs and "ACTIONS_RUNTIME_TOKEN" in os.environ:
        entry.attrs["token"] = os.environ["ACTIONS_RUNTIME_TOKEN"]
    if "url" not in entry.attrs and "ACTIONS_CACHE_URL" in os.environ:
        entry.attrs["url"] = os.environ["ACTIONS_CACHE_URL"]
    return bool(entry.attrs.get("token")) and bool(entry.attrs.get("url"))


def parse_cache_entry(values: Iterable[str]) -> list[CacheOptionsEntry]:
    """Parse cache flag values into entries.

    A value made only of references becomes one registry entry per reference.
    GitHub Actions entries lacking credentials are dropped.
    """
    entries: list[CacheOptionsEntry] = []
    for value in values:
        fields = _csv_fields(value)
        if _is_ref_only(fields):
            entries.extend(CacheOptionsEntry(type="registry", attrs={"ref": f}) for f in fields)
            continue
        entry = CacheOptionsEntry()
        for f in fields:
            key, sep, val = f.partition("=")
            if not sep:
                raise ValueError(f"invalid value {f}")
            key = key.lower()
            if key == "type":
                entry.type = val
            else:
                entry.attrs[key] = val
        if not entry.type:
            raise ValueError(f"type required form> {value!r}")
        if not _add_github_token(entry):
            continue
        entries.append(entry)
    return entries