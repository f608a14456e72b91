"""Parsing of ``--output`` flag values into export entries."""

from __future__ import annotations

import csv
import io
import os
import stat
import sys
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable

EXPORTER_IMAGE = "image"
EXPORTER_LOCAL = "local"
EXPORTER_TAR = "tar"
EXPORTER_OCI = "oci"
EXPORTER_DOCKER = "docker"


@dataclass
class ExportEntry:
    """Where and how a build result is exported."""

    type: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    output_dir: str = ""
    output: BinaryIO | None = None


def _csv_fields(value: str) -> list[str]:
    reader = csv.reader(io.StringIO(value), strict=True)
    try:
        for fields in reader:
            if fields:
                return fields
    except csv.Error as exc:
        raise ValueError(str(exc)) from exc
    raise ValueError("EOF")


def _stdout_stream(exporter: str) -> BinaryIO:
    stdout = sys.stdout
    if stdout.isatty():
        raise ValueError(
            f"output file is required for {exporter} exporter. refusing to write to console"
        )
    return getattr(stdout, "buffer", stdout)


def _open_destination(dest: str) -> BinaryIO:
    try:
        st = os.stat(dest)
    except FileNotFoundError:
        st = None
    except OSError as exc:
        raise OSError(f"invalid destination file: {dest}: {exc}") from exc
    if st is not None and stat.S_ISDIR(st.st_mode):
        raise ValueError(f"destination file {dest} is a directory")
    try:
        return open(dest, "wb")
    except OSError as exc:
        raise OSError(f"failed to open {exc}") from exc


def parse_outputs(values: Iterable[str]) -> list[ExportEntry]:
    """Parse output flag values.

    A bare path means a local export to that directory and ``-`` means a tar
    stream to standard output. File based exporters get their destination
    opened for writing.
    """
    outs: list[ExportEntry] = []
    for value in values:
        fields = _csv_fields(value)
        out = ExportEntry()
        if len(fields) == 1 and fields[0] == value and not value.startswith("type="):
            if value != "-":
                outs.append(ExportEntry(type=EXPORTER_LOCAL, output_dir=value))
                continue
            out = ExportEntry(type=EXPORTER_TAR, attrs={"dest": value})

        if not out.type:
            for f in fields:
                key, sep, val = f.partition("=")
                if not sep:
                    raise ValueError(f"invalid value {f}")
                key = key.lower().strip()
                if key == "type":
                    out.type = val
                else:
                    out.attrs[key] = val
        if not out.type:
            raise ValueError("type is required for output")

        if out.type == EXPORTER_LOCAL:
            if "dest" not in out.attrs:
                raise ValueError("dest is required for local output")
            out.output_dir = out.attrs.pop("dest")
        elif out.type in (EXPORTER_OCI, EXPORTER_DOCKER, EXPORTER_TAR):
            default = "" if out.type == EXPORTER_DOCKER else "-"
            dest = out.attrs.pop("dest", default)
            if dest == "-":
                out.output = _stdout_stream(out.type)
            elif dest:
                out.output = _open_destination(dest)
        elif out.type == "registry":
            out.type = EXPORTER_IMAGE
            out.attrs.setdefault("push", "true")

        outs.append(out)
    return outs