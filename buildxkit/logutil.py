"""Logging helpers: message filtering, a terse formatter and output pausing."""

from __future__ import annotations

import io
import logging
import threading
from typing import Callable, Iterable, TextIO


class MessageFilter(logging.Filter):
    """Drop records at the given levels whose message contains any filter string."""

    def __init__(self, levels: Iterable[int], *filters: str) -> None:
        super().__init__()
        self.levels = frozenset(levels)
        self.filters = tuple(filters)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno not in self.levels:
            return True
        message = record.getMessage()
        return not any(f in message for f in self.filters)


class LevelFormatter(logging.Formatter):
    """Format records as ``LEVEL: message``."""

    def format(self, record: logging.LogRecord) -> str:
        return f"{record.levelname.upper()}: {record.getMessage()}"


class BufferedWriter:
    """A stream that holds writes in memory until resumed, then passes them through."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._buffer: io.StringIO | None = io.StringIO()
        self._lock = threading.Lock()

    def write(self, data: str) -> int:
        with self._lock:
            if self._buffer is None:
                return self._stream.write(data)
            return self._buffer.write(data)

    def flush(self) -> None:
        with self._lock:
            if self._buffer is None:
                self._stream.flush()

    def resume(self) -> None:
        """Write out everything buffered and stop buffering."""
        with self._lock:
            if self._buffer is None:
                return
            self._stream.write(self._buffer.getvalue())
            self._buffer = None
            self._stream.flush()


def pause(logger: logging.Logger) -> Callable[[], None]:
    """Buffer the output of the logger's stream handlers; return a resume callback."""
    paused: list[tuple[logging.StreamHandler, TextIO, BufferedWriter]] = []
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            original = handler.stream
            writer = BufferedWriter(original)
            handler.setStream(writer)
            paused.append((handler, original, writer))

    def resume() -> None:
        for handler, original, writer in paused:
            writer.resume()
            if handler.stream is writer:
                handler.setStream(original)

    return resume