"""Reporting the consumption of a stream as a vertex."""

from __future__ import annotations

from dataclasses import replace
from typing import BinaryIO

from buildxkit.progress.writer import SolveStatus, Vertex, Writer, _new_digest, _now

_CHUNK = 32 * 1024


def from_reader(writer: Writer, name: str, stream: BinaryIO) -> None:
    """Read ``stream`` to its end, reporting it as a vertex named ``name``.

    A read error is recorded as the vertex error. The stream is not closed.
    """
    vertex = Vertex(digest=_new_digest(), name=name, started=_now())
    writer.write(SolveStatus(vertexes=[vertex]))
    error = ""
    try:
        while stream.read(_CHUNK):
            pass
    except (OSError, ValueError) as exc:
        error = str(exc)
    writer.write(SolveStatus(vertexes=[replace(vertex, completed=_now(), error=error)]))