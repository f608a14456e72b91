import pytest

from buildxkit.progress.wrap import wrap
from buildxkit.progress.writer import VertexStatus


def test_wrap_returns_result_and_reports_vertex():
    seen = []
    result = wrap("load", seen.append, lambda sub: 42)
    assert result == 42
    assert len(seen) == 2
    start, end = seen[0].vertexes[0], seen[1].vertexes[0]
    assert start.name == end.name == "load"
    assert start.digest == end.digest
    assert start.completed is None
    assert end.started == start.started
    assert end.completed >= end.started
    assert end.error == ""


def test_wrap_records_and_reraises():
    seen = []

    def fail(sub):
        raise ValueError("bad input")

    with pytest.raises(ValueError, match="bad input"):
        wrap("load", seen.append, fail)
    assert seen[-1].vertexes[0].error == "bad input"


def test_sub_wrap_reports_task_under_vertex():
    seen = []

    def body(sub):
        return sub.wrap("task", lambda: "done")

    assert wrap("outer", seen.append, body) == "done"
    digest = seen[0].vertexes[0].digest
    started, finished = seen[1].statuses[0], seen[2].statuses[0]
    assert started.vertex == finished.vertex == digest
    assert started.id == finished.id == "task"
    assert started.completed is None
    assert finished.completed is not None and finished.started == started.started


def test_sub_log_and_set_status():
    seen = []

    def body(sub):
        sub.log(2, b"warning text")
        sub.set_status(VertexStatus(id="pull", total=10, current=3))

    wrap("outer", seen.append, body)
    digest = seen[0].vertexes[0].digest
    log = seen[1].logs[0]
    assert (log.vertex, log.stream, log.data) == (digest, 2, b"warning text")
    status = seen[2].statuses[0]
    assert (status.vertex, status.id, status.current) == (digest, "pull", 3)