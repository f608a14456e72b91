from buildxkit.progress.prefix import with_prefix
from buildxkit.progress.writer import SolveStatus, Vertex, Writer


class RecordingWriter(Writer):
    def __init__(self):
        self.statuses = []
        self.validated = []
        self.cleared = []

    def write(self, status):
        self.statuses.append(status)

    def validate_log_source(self, digest, source):
        self.validated.append((digest, source))
        return digest == "sha256:ok"

    def clear_log_source(self, source):
        self.cleared.append(source)


def test_forced_prefix_on_plain_name():
    inner = RecordingWriter()
    with_prefix(inner, "linux", True).write(SolveStatus(vertexes=[Vertex(digest="d", name="build")]))
    assert inner.statuses[0].vertexes[0].name == "[linux] build"


def test_forced_prefix_merges_bracketed_name():
    inner = RecordingWriter()
    with_prefix(inner, "linux", True).write(
        SolveStatus(vertexes=[Vertex(digest="d", name="[1/2] RUN make")])
    )
    assert inner.statuses[0].vertexes[0].name == "[linux 1/2] RUN make"


def test_unforced_leaves_names():
    inner = RecordingWriter()
    with_prefix(inner, "linux", False).write(SolveStatus(vertexes=[Vertex(digest="d", name="build")]))
    assert inner.statuses[0].vertexes[0].name == "build"


def test_log_source_calls_delegate():
    inner = RecordingWriter()
    w = with_prefix(inner, "p", True)
    source = object()
    assert w.validate_log_source("sha256:ok", source) is True
    assert w.validate_log_source("sha256:no", source) is False
    w.clear_log_source(source)
    assert inner.validated == [("sha256:ok", source), ("sha256:no", source)]
    assert inner.cleared == [source]