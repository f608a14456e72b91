"""A progress writer that tags vertex names with a prefix."""

from __future__ import annotations

from buildxkit.progress.writer import SolveStatus, Writer


def _add_prefix(prefix: str, name: str) -> str:
    if name.startswith("["):
        return f"[{prefix} {name[1:]}"
    return f"[{prefix}] {name}"


class PrefixedWriter(Writer):
    """Passes updates on, prefixing vertex names when forced."""

    def __init__(self, writer: Writer, prefix: str, force: bool) -> None:
        self._writer = writer
        self.prefix = prefix
        self.force = force

    def write(self, status: SolveStatus) -> None:
        if self.force:
            for vertex in status.vertexes:
                vertex.name = _add_prefix(self.prefix, vertex.name)
        self._writer.write(status)

    def validate_log_source(self, digest: str, source: object) -> bool:
        return self._writer.validate_log_source(digest, source)

    def clear_log_source(self, source: object) -> None:
        self._writer.clear_log_source(source)


def with_prefix(writer: Writer, prefix: str, force: bool) -> PrefixedWriter:
    """Wrap a writer so vertex names carry ``prefix``."""
    return PrefixedWriter(writer, prefix, force)