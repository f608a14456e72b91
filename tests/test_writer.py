import time

import pytest

from buildxkit.progress.writer import SolveStatus, VertexLog, Writer, new_channel, write


class RecordingWriter(Writer):
    def __init__(self):
        self.statuses = []
        self.sources = {}
        self.cleared = []

    def write(self, status):
        self.statuses.append(status)

    def validate_log_source(self, digest, source):
        return self.sources.setdefault(digest, source) is source

    def clear_log_source(self, source):
        self.cleared.append(source)
        for digest in [d for d, s in self.sources.items() if s is source]:
            del self.sources[digest]


def _wait_for(pred, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not pred():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.01)


def test_write_reports_start_and_completion():
    w = RecordingWriter()
    calls = []
    write(w, "step", lambda: calls.append(1))
    assert calls == [1]
    assert len(w.statuses) == 2
    first = w.statuses[0].vertexes[0]
    last = w.statuses[1].vertexes[0]
    assert first.name == last.name == "step"
    assert first.digest == last.digest
    assert first.digest.startswith("sha256:")
    assert first.completed is None
    assert last.completed >= last.started == first.started
    assert last.error == ""


def test_write_records_error():
    w = RecordingWriter()

    def fail():
        raise RuntimeError("boom")

    write(w, "step", fail)
    assert w.statuses[1].vertexes[0].error == "boom"


def test_write_uses_fresh_digests():
    w = RecordingWriter()
    write(w, "a", lambda: None)
    write(w, "b", lambda: None)
    assert w.statuses[0].vertexes[0].digest != w.statuses[2].vertexes[0].digest
    assert w.statuses[2].vertexes[0].name == "b"


def test_channel_forwards_and_clears():
    w = RecordingWriter()
    ch, done = new_channel(w)
    ch.send(SolveStatus(logs=[VertexLog(vertex="sha256:v", stream=1, data=b"x")]))
    ch.close()
    assert done.wait(5)
    assert [log.data for log in w.statuses[0].logs] == [b"x"]
    assert w.cleared == [done]
    assert w.sources == {}


def test_channel_drops_logs_owned_by_other_source():
    w = RecordingWriter()
    ch1, done1 = new_channel(w)
    ch2, done2 = new_channel(w)
    ch1.send(SolveStatus(logs=[VertexLog(vertex="sha256:v", data=b"one")]))
    _wait_for(lambda: len(w.statuses) == 1)
    ch2.send(SolveStatus(logs=[VertexLog(vertex="sha256:v", data=b"two")]))
    ch2.close()
    assert done2.wait(5)
    assert w.statuses[1].logs == []
    ch1.close()
    assert done1.wait(5)


def test_send_after_close_fails():
    w = RecordingWriter()
    ch, done = new_channel(w)
    ch.close()
    assert done.wait(5)
    with pytest.raises(RuntimeError):
        ch.send(SolveStatus())


def test_channel_context_manager_closes():
    w = RecordingWriter()
    ch, done = new_channel(w)
    with ch:
        ch.send(SolveStatus())
    assert done.wait(5)
    assert len(w.statuses) == 1