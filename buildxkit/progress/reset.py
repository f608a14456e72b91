"""A progress writer that shifts all times so the first vertex starts now."""

from __future__ import annotations

from datetime import datetime, timedelta

from buildxkit.progress.writer import SolveStatus, Writer, _now


def _shift(value: datetime | None, diff: timedelta) -> datetime | None:
    return None if value is None else value - diff


class ResetTimeWriter(Writer):
    """Rebases timestamps on the moment the writer was created."""

    def __init__(self, writer: Writer) -> None:
        self._writer = writer
        self._created = _now()
        self._diff: timedelta | None = None

    def write(self, status: SolveStatus) -> None:
        if self._diff is None:
            for vertex in status.vertexes:
                if vertex.started is not None:
                    self._diff = vertex.started - self._created
        diff = self._diff
        if diff is not None:
            for vertex in status.vertexes:
                vertex.started = _shift(vertex.started, diff)
                vertex.completed = _shift(vertex.completed, diff)
            for st in status.statuses:
                st.started = _shift(st.started, diff)
                st.completed = _shift(st.completed, diff)
                st.timestamp = _shift(st.timestamp, diff)
            for log in status.logs:
                log.timestamp = _shift(log.timestamp, diff)
        self._writer.write(status)

    def validate_log_source(self, digest: str, source: object) -> bool:
        return self._writer.validate_log_source(digest, source)

    def clear_log_source(self, source: object) -> None:
        self._writer.clear_log_source(source)


def reset_time(writer: Writer) -> ResetTimeWriter:
    """Wrap a writer so reported times start from now."""
    return ResetTimeWriter(writer)