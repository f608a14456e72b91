"""In-process pipes and the stream multiplexing behind the interactive monitor."""

from __future__ import annotations

import codecs
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

log = logging.getLogger(__name__)

_COPY_CHUNK = 4096
_CONTROL_A = "\x01"


class ClosedPipeError(OSError):
    """Raised on reading or writing a pipe end that has been closed."""


class _Reader(Protocol):
    def read(self, size: int = -1) -> bytes: ...


class _Writer(Protocol):
    def write(self, data: bytes) -> int: ...


class _Pipe:
    """Synchronous in-memory pipe: a write returns once the reader has taken it all."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._write_lock = threading.Lock()
        self._buffer = bytearray()
        self._writer_closed = False
        self._writer_error: BaseException | None = None
        self._reader_closed = False
        self._reader_error: BaseException | None = None

    def read(self, size: int) -> bytes:
        with self._cond:
            while True:
                if self._reader_closed:
                    raise ClosedPipeError("read on closed pipe")
                if self._buffer:
                    n = len(self._buffer) if size < 0 else min(size, len(self._buffer))
                    data = bytes(self._buffer[:n])
                    del self._buffer[:n]
                    self._cond.notify_all()
                    return data
                if self._writer_closed:
                    if self._writer_error is not None:
                        raise self._writer_error
                    return b""
                self._cond.wait()

    def write(self, data: bytes) -> int:
        data = bytes(data)
        with self._write_lock, self._cond:
            if self._writer_closed:
                raise ClosedPipeError("write on closed pipe")
            if self._reader_closed:
                raise self._reader_error or ClosedPipeError("write on closed pipe")
            if not data:
                return 0
            self._buffer += data
            self._cond.notify_all()
            while self._buffer and not self._reader_closed:
                self._cond.wait()
            if self._buffer:
                self._buffer.clear()
                raise self._reader_error or ClosedPipeError("write on closed pipe")
            return len(data)

    def close_reader(self, error: BaseException | None) -> None:
        with self._cond:
            if not self._reader_closed:
                self._reader_closed = True
                self._reader_error = error
            self._cond.notify_all()

    def close_writer(self, error: BaseException | None) -> None:
        with self._cond:
            if not self._writer_closed:
                self._writer_closed = True
                self._writer_error = error
            self._cond.notify_all()


class PipeReader:
    """The reading end of a pipe; an empty read means end of stream."""

    def __init__(self, pipe_: _Pipe) -> None:
        self._pipe = pipe_

    def read(self, size: int = -1) -> bytes:
        return self._pipe.read(size)

    def close(self) -> None:
        self._pipe.close_reader(None)

    def close_with_error(self, error: BaseException) -> None:
        """Close so that further writes raise ``error``."""
        self._pipe.close_reader(error)


class PipeWriter:
    """The writing end of a pipe."""

    def __init__(self, pipe_: _Pipe) -> None:
        self._pipe = pipe_

    def write(self, data: bytes) -> int:
        return self._pipe.write(data)

    def close(self) -> None:
        self._pipe.close_writer(None)

    def close_with_error(self, error: BaseException) -> None:
        """Close so that reads, once drained, raise ``error``."""
        self._pipe.close_writer(error)


def pipe() -> tuple[PipeReader, PipeWriter]:
    """Create a connected reader and writer."""
    p = _Pipe()
    return PipeReader(p), PipeWriter(p)


def _close_all(*ends: object) -> None:
    error: BaseException | None = None
    for end in ends:
        try:
            end.close()  # type: ignore[attr-defined]
        except Exception as exc:
            error = exc
    if error is not None:
        raise error


@dataclass
class IOSetIn:
    """The side that reads input and writes output and errors."""

    stdin: PipeReader
    stdout: PipeWriter
    stderr: PipeWriter

    def close(self) -> None:
        """Close every stream; the last failure, if any, is raised."""
        _close_all(self.stdin, self.stdout, self.stderr)


@dataclass
class IOSetOut:
    """The side that writes input and reads output and errors."""

    stdin: PipeWriter
    stdout: PipeReader
    stderr: PipeReader

    def close(self) -> None:
        """Close every stream; the last failure, if any, is raised."""
        _close_all(self.stdin, self.stdout, self.stderr)


def io_set_pipe() -> tuple[IOSetIn, IOSetOut]:
    """Create three pipes joined into a matching pair of stream sets."""
    r1, w1 = pipe()
    r2, w2 = pipe()
    r3, w3 = pipe()
    return IOSetIn(r1, w2, w3), IOSetOut(w1, r2, r3)


@dataclass
class OutputContext(IOSetOut):
    """An output stream set with hooks run when it gains or loses the input."""

    enable_hook: Callable[[], None] | None = None
    disable_hook: Callable[[], None] | None = None


def copy_to_func(reader: _Reader, writer_func: Callable[[], _Writer | None]) -> None:
    """Copy ``reader`` to the writer chosen by ``writer_func`` at each chunk.

    Data is dropped while ``writer_func`` returns None. Write failures are
    logged and ignored; read failures propagate.
    """
    while True:
        data = reader.read(_COPY_CHUNK)
        writer = writer_func()
        if writer is not None and data:
            try:
                writer.write(data)
            except Exception as exc:
                log.debug("failed to copy: %s", exc)
        if not data:
            return


class _ReaderWithClose:
    def __init__(self, reader: PipeReader, close_func: Callable[[], None]) -> None:
        self._reader = reader
        self._close_func = close_func

    def read(self, size: int = -1) -> bytes:
        return self._reader.read(size)

    def close(self) -> None:
        self._close_func()


def trace_reader(reader: PipeReader, fn: Callable[[str], bool]) -> _ReaderWithClose:
    """Pass ``reader`` through character by character, keeping those ``fn`` accepts.

    An exception raised by ``fn`` ends the stream and is raised to the reader.
    """
    out_r, out_w = pipe()

    def emit(chars: str) -> bool:
        for ch in chars:
            try:
                keep = fn(ch)
            except Exception as exc:
                out_w.close_with_error(exc)
                return False
            if not keep:
                continue
            try:
                out_w.write(ch.encode("utf-8"))
            except Exception as exc:
                out_w.close_with_error(exc)
                return False
        return True

    def run() -> None:
        decoder = codecs.getincrementaldecoder("utf-8")("replace")
        while True:
            try:
                data = reader.read(1)
            except Exception as exc:
                out_w.close_with_error(exc)
                return
            if not data:
                if emit(decoder.decode(b"", final=True)):
                    out_w.close()
                return
            if not emit(decoder.decode(data)):
                return

    threading.Thread(target=run, daemon=True).start()

    def close() -> None:
        out_r.close()
        reader.close()

    return _ReaderWithClose(out_r, close)


class _ToggleIO(Exception):
    """The input asked to switch to the next output."""


def _toggle_detector() -> Callable[[str], bool]:
    prev_is_control = False

    def check(ch: str) -> bool:
        nonlocal prev_is_control
        if ch == _CONTROL_A:
            prev_is_control = True
            return False
        was_control, prev_is_control = prev_is_control, False
        if was_control and ch == "c":
            raise _ToggleIO("toggle IO")
        return True

    return check


class MuxIO:
    """Routes one input set to one of several outputs, switched by Ctrl-A c.

    Output streams are closed once the input reaches end of stream; the
    input set itself is left for the caller to close.
    """

    def __init__(
        self,
        in_: IOSetIn,
        outputs: Sequence[OutputContext],
        init_index: int,
        toggle_message: str,
    ) -> None:
        self._in = in_
        self._outputs = list(outputs)
        self._enabled = set(range(len(self._outputs)))
        self._cur = init_index
        self._toggle_message = toggle_message
        self._lock = threading.RLock()
        self._closed = threading.Event()

        copiers: list[threading.Thread] = []
        for index, out in enumerate(self._outputs):
            for name, src, dst in (
                ("stdout", out.stdout, in_.stdout),
                ("stderr", out.stderr, in_.stderr),
            ):
                thread = threading.Thread(
                    target=self._forward_output, args=(index, name, src, dst), daemon=True
                )
                thread.start()
                copiers.append(thread)
        threading.Thread(target=self._serve_input, args=(copiers,), daemon=True).start()

    @property
    def current(self) -> int:
        """Index of the output currently receiving input."""
        return self._cur

    def _forward_output(self, index: int, name: str, src: PipeReader, dst: PipeWriter) -> None:
        try:
            copy_to_func(src, lambda: dst if self._cur == index else None)
        except Exception as exc:
            log.warning("failed to write %s of output %d: %s", name, index, exc)
        try:
            src.close()
        except Exception as exc:
            log.warning("failed to close %s of output %d: %s", name, index, exc)

    def _current_stdin(self) -> PipeWriter:
        with self._lock:
            return self._outputs[self._cur].stdin

    def _serve_input(self, copiers: list[threading.Thread]) -> None:
        while True:
            try:
                copy_to_func(trace_reader(self._in.stdin, _toggle_detector()), self._current_stdin)
            except _ToggleIO:
                self.toggle_io()
                continue
            except Exception as exc:
                log.warning("failed to read stdin: %s", exc)
            break

        for index, out in enumerate(self._outputs):
            try:
                out.stdin.close()
            except Exception as exc:
                log.warning("failed to close stdin of %d: %s", index, exc)
        for thread in copiers:
            thread.join()
        self._closed.set()

    def wait_closed(self) -> None:
        """Block until every output has reached end of stream."""
        self._closed.wait()

    def enable(self, index: int) -> None:
        """Allow an output to receive input again."""
        with self._lock:
            self._enabled.add(index)

    def disable(self, index: int) -> None:
        """Stop an output receiving input, switching away if it is current."""
        with self._lock:
            if index == 0:
                raise ValueError("disabling 0th io is prohibited")
            self._enabled.discard(index)
            if self._cur == index:
                self.toggle_io()

    def toggle_io(self) -> None:
        """Switch input to the next enabled output."""
        with self._lock:
            hook = self._outputs[self._cur].disable_hook
            if hook is not None:
                hook()
            count = len(self._outputs)
            while True:
                self._cur = (self._cur + 1) % count
                if self._cur in self._enabled:
                    break
            hook = self._outputs[self._cur].enable_hook
            if hook is not None:
                hook()
        if self._toggle_message:
            try:
                self._in.stdout.write(self._toggle_message.encode("utf-8"))
            except Exception as exc:
                log.debug("failed to write toggle message: %s", exc)


class IOForwarder:
    """Forwards one input set to a destination that can be swapped at any time."""

    def __init__(self, in_: IOSetIn) -> None:
        self._in = in_
        self._cur: IOSetOut | None = None
        self._lock = threading.Lock()
        self._done = threading.Event()
        threading.Thread(target=self._forward_input, daemon=True).start()

    def _destination_stdin(self) -> PipeWriter | None:
        with self._lock:
            return None if self._cur is None else self._cur.stdin

    def _forward_input(self) -> None:
        try:
            copy_to_func(self._in.stdin, self._destination_stdin)
        except ClosedPipeError:
            pass
        except Exception as exc:
            log.warning("failed to forward IO: %s", exc)
        self._done.set()
        with self._lock:
            cur = self._cur
        if cur is not None:
            try:
                cur.close()
            except Exception as exc:
                log.warning("failed to close forwarded stdin IO: %s", exc)

    @staticmethod
    def _pump(src: PipeReader, dst: PipeWriter, name: str) -> None:
        try:
            while True:
                data = src.read(_COPY_CHUNK)
                if not data:
                    return
                dst.write(data)
        except ClosedPipeError:
            pass  # the source is closed when the destination is replaced
        except Exception as exc:
            log.warning("failed to forward %s: %s", name, exc)

    def set_destination(self, out: IOSetOut | None) -> None:
        """Close the current destination and forward to ``out`` instead."""
        with self._lock:
            if self._cur is not None:
                self._cur.close()
            self._cur = out
            if out is None or self._done.is_set():
                return
        if out.stdout is not None and out.stderr is not None:
            for src, dst, name in (
                (out.stdout, self._in.stdout, "stdout"),
                (out.stderr, self._in.stderr, "stderr"),
            ):
                threading.Thread(target=self._pump, args=(src, dst, name), daemon=True).start()