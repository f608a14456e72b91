import io
import sys

import pytest

from buildxkit.buildflags.output import ExportEntry, parse_outputs


class _Console(io.StringIO):
    def isatty(self):
        return True


def test_no_values():
    assert parse_outputs([]) == []


def test_bare_path_is_local_export():
    assert parse_outputs(["outdir"]) == [ExportEntry(type="local", output_dir="outdir")]


def test_local_with_dest():
    (entry,) = parse_outputs(["type=local,dest=out"])
    assert entry.type == "local"
    assert entry.output_dir == "out"
    assert "dest" not in entry.attrs


def test_local_requires_dest():
    with pytest.raises(ValueError, match="dest is required for local output"):
        parse_outputs(["type=local"])


def test_registry_becomes_pushed_image():
    (entry,) = parse_outputs(["type=registry,name=app"])
    assert entry.type == "image"
    assert entry.attrs == {"name": "app", "push": "true"}


def test_registry_keeps_explicit_push():
    (entry,) = parse_outputs(["type=registry,push=false"])
    assert entry.attrs["push"] == "false"


def test_image_attrs_unchanged():
    (entry,) = parse_outputs(["type=image,name=app"])
    assert entry.type == "image"
    assert entry.attrs == {"name": "app"}


def test_tar_to_file(tmp_path):
    target = tmp_path / "out.tar"
    (entry,) = parse_outputs([f"type=tar,dest={target}"])
    assert "dest" not in entry.attrs
    entry.output.write(b"payload")
    entry.output.close()
    assert target.read_bytes() == b"payload"


def test_destination_directory_rejected(tmp_path):
    with pytest.raises(ValueError, match="is a directory"):
        parse_outputs([f"type=oci,dest={tmp_path}"])


def test_dash_writes_to_stdout(monkeypatch):
    fake = io.TextIOWrapper(io.BytesIO())
    monkeypatch.setattr(sys, "stdout", fake)
    (entry,) = parse_outputs(["-"])
    assert entry.type == "tar"
    assert entry.output is fake.buffer
    assert entry.attrs == {}


def test_console_stdout_refused(monkeypatch):
    monkeypatch.setattr(sys, "stdout", _Console())
    with pytest.raises(ValueError, match="refusing to write to console"):
        parse_outputs(["type=oci"])


def test_docker_without_dest_has_no_output():
    (entry,) = parse_outputs(["type=docker"])
    assert entry.type == "docker"
    assert entry.output is None


def test_type_required():
    with pytest.raises(ValueError, match="type is required for output"):
        parse_outputs(["name=app"])


def test_invalid_field():
    with pytest.raises(ValueError, match="invalid value broken"):
        parse_outputs(["type=image,broken"])