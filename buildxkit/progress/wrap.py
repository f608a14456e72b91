"""Reporting a unit of work, and its sub-tasks and logs, as one vertex."""

from __future__ import annotations

from typing import Callable, TypeVar

from buildxkit.progress.writer import (
    SolveStatus,
    Vertex,
    VertexLog,
    VertexStatus,
    _new_digest,
    _now,
)

T = TypeVar("T")

Logger = Callable[[SolveStatus], None]


class SubLogger:
    """Reports tasks and logs under an existing vertex."""

    def __init__(self, digest: str, logger: Logger) -> None:
        self.digest = digest
        self._logger = logger

    def wrap(self, name: str, fn: Callable[[], T]) -> T:
        """Run ``fn`` as a task named ``name`` within the vertex."""
        started = _now()
        self._logger(
            SolveStatus(
                statuses=[VertexStatus(id=name, vertex=self.digest, timestamp=_now(), started=started)]
            )
        )
        try:
            return fn()
        finally:
            self._logger(
                SolveStatus(
                    statuses=[
                        VertexStatus(
                            id=name,
                            vertex=self.digest,
                            timestamp=_now(),
                            started=started,
                            completed=_now(),
                        )
                    ]
                )
            )

    def log(self, stream: int, data: bytes) -> None:
        """Report a chunk of output on a stream."""
        self._logger(
            SolveStatus(logs=[VertexLog(vertex=self.digest, stream=stream, data=data, timestamp=_now())])
        )

    def set_status(self, status: VertexStatus) -> None:
        """Report a task status, attaching it to this vertex."""
        status.vertex = self.digest
        self._logger(SolveStatus(statuses=[status]))


def wrap(name: str, logger: Logger, fn: Callable[[SubLogger], T]) -> T:
    """Run ``fn`` as a vertex named ``name``; its exception is recorded and re-raised."""
    digest = _new_digest()
    started = _now()
    logger(SolveStatus(vertexes=[Vertex(digest=digest, name=name, started=started)]))
    error = ""
    try:
        return fn(SubLogger(digest, logger))
    except Exception as exc:
        error = str(exc)
        raise
    finally:
        logger(
            SolveStatus(
                vertexes=[
                    Vertex(digest=digest, name=name, started=started, completed=_now(), error=error)
                ]
            )
        )