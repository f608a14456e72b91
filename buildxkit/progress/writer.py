"""Progress records, the writer interface and helpers that report into it."""

from __future__ import annotations

import hashlib
import queue
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Iterator


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_digest() -> str:
    return "sha256:" + hashlib.sha256(uuid.uuid4().hex.encode("ascii")).hexdigest()


@dataclass
class Vertex:
    """A step of a build."""

    digest: str
    name: str = ""
    started: datetime | None = None
    completed: datetime | None = None
    error: str = ""


@dataclass
class VertexStatus:
    """Progress of one task within a vertex."""

    id: str = ""
    vertex: str = ""
    name: str = ""
    total: int = 0
    current: int = 0
    timestamp: datetime | None = None
    started: datetime | None = None
    completed: datetime | None = None


@dataclass
class VertexLog:
    """A chunk of log output from a vertex."""

    vertex: str = ""
    stream: int = 0
    data: bytes = b""
    timestamp: datetime | None = None


@dataclass
class SolveStatus:
    """A batch of progress updates."""

    vertexes: list[Vertex] = field(default_factory=list)
    statuses: list[VertexStatus] = field(default_factory=list)
    logs: list[VertexLog] = field(default_factory=list)


class Writer(ABC):
    """Receiver of progress updates."""

    @abstractmethod
    def write(self, status: SolveStatus) -> None:
        """Accept a batch of updates."""

    @abstractmethod
    def validate_log_source(self, digest: str, source: object) -> bool:
        """Claim a vertex's logs for a source; False if another source owns them."""

    @abstractmethod
    def clear_log_source(self, source: object) -> None:
        """Release every vertex claimed by a source."""


def write(writer: Writer, name: str, fn: Callable[[], object]) -> None:
    """Report ``fn`` as a vertex named ``name``.

    An exception from ``fn`` is recorded as the vertex error and not raised.
    """
    vertex = Vertex(digest=_new_digest(), name=name, started=_now())
    writer.write(SolveStatus(vertexes=[vertex]))
    error = ""
    try:
        fn()
    except Exception as exc:  # reported through the vertex
        error = str(exc)
    writer.write(SolveStatus(vertexes=[replace(vertex, completed=_now(), error=error)]))


_CLOSED = object()


class _StatusChannel:
    """Sending end of a status stream; close it when done."""

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()

    def send(self, status: SolveStatus) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("send on closed channel")
            self._queue.put(status)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("close of closed channel")
            self._closed = True
            self._queue.put(_CLOSED)

    def __enter__(self) -> _StatusChannel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if not self._closed:
            self.close()

    def _receive(self) -> Iterator[SolveStatus]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]


def new_channel(writer: Writer) -> tuple[_StatusChannel, threading.Event]:
    """Start forwarding statuses sent on a channel to ``writer``.

    Logs for vertices already claimed by another source are dropped. The
    returned event is set once the channel is closed and drained.
    """
    channel = _StatusChannel()
    done = threading.Event()

    def forward() -> None:
        for status in channel._receive():
            if status.logs:
                status.logs = [
                    log for log in status.logs if writer.validate_log_source(log.vertex, done)
                ]
            writer.write(status)
        writer.clear_log_source(done)
        done.set()

    threading.Thread(target=forward, daemon=True).start()
    return channel, done