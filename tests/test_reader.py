import io

from buildxkit.progress.reader import from_reader
from buildxkit.progress.writer import Writer


class RecordingWriter(Writer):
    def __init__(self):
        self.statuses = []

    def write(self, status):
        self.statuses.append(status)

    def validate_log_source(self, digest, source):
        return True

    def clear_log_source(self, source):
        pass


class FailingStream(io.RawIOBase):
    def readable(self):
        return True

    def read(self, size=-1):
        raise OSError("connection reset")


def test_stream_is_consumed_and_reported():
    w = RecordingWriter()
    stream = io.BytesIO(b"x" * 100000)
    from_reader(w, "loading", stream)
    assert stream.read() == b""
    assert not stream.closed
    start, end = w.statuses[0].vertexes[0], w.statuses[1].vertexes[0]
    assert start.name == end.name == "loading"
    assert start.digest == end.digest
    assert start.completed is None
    assert end.completed >= end.started
    assert end.error == ""


def test_read_error_is_recorded():
    w = RecordingWriter()
    from_reader(w, "loading", FailingStream())
    assert len(w.statuses) == 2
    assert w.statuses[1].vertexes[0].error == "connection reset"