import pytest

from buildxkit.nodegroup import Node, NodeGroup, validate_name
from buildxkit.platforms import format_platforms


def test_node_group_update():
    ng = NodeGroup()
    ng.update("foo", "foo0", ["linux/amd64"], True, False, ["--debug"], "", None)
    ng.update("foo1", "foo1", ["linux/arm64", "linux/arm/v7"], True, True, None, "", None)
    assert len(ng.nodes) == 2

    ng.update("foo", "foo2", ["linux/amd64", "linux/arm"], True, False, None, "", None)
    assert len(ng.nodes) == 2
    assert format_platforms(ng.nodes[0].platforms) == ["linux/amd64", "linux/arm/v7"]
    assert format_platforms(ng.nodes[1].platforms) == ["linux/arm64"]
    assert ng.nodes[0].endpoint == "foo2"
    assert ng.nodes[0].flags == ["--debug"]
    assert ng.nodes[1].flags is None

    with pytest.raises(ValueError, match="duplicate endpoint"):
        ng.update("foo1", "foo2", None, True, False, None, "", None)

    ng.leave("foo")
    assert len(ng.nodes) == 1
    assert format_platforms(ng.nodes[0].platforms) == ["linux/arm64"]


def test_leave_last_node_fails():
    ng = NodeGroup(name="b")
    ng.update("n", "ep", None, True, False, None, "", None)
    with pytest.raises(ValueError, match="last node"):
        ng.leave("n")


def test_leave_unknown_node():
    ng = NodeGroup(name="b", nodes=[Node("a", "e1"), Node("c", "e2")])
    with pytest.raises(KeyError):
        ng.leave("zzz")


def test_dynamic_group_rejects_changes():
    ng = NodeGroup(name="b", nodes=[Node("a"), Node("c")], dynamic=True)
    with pytest.raises(ValueError, match="dynamic"):
        ng.leave("a")
    with pytest.raises(ValueError, match="dynamic"):
        ng.update("a", "x", None, True, False, None, "", None)


def test_update_missing_without_append():
    ng = NodeGroup(name="b")
    ng.update("a", "e1", None, True, False, None, "", None)
    with pytest.raises(KeyError, match="did you mean to append"):
        ng.update("other", "e2", None, True, False, None, "", None)


def test_generated_node_names():
    ng = NodeGroup(name="builder")
    ng.update("", "e1", None, True, True, None, "", None)
    ng.update("", "e2", None, True, True, None, "", None)
    assert [n.name for n in ng.nodes] == ["builder0", "builder1"]


def test_new_node_name_is_lowercased_and_validated():
    ng = NodeGroup(name="b")
    ng.update("MyNode", "e1", None, True, True, None, "", {"k": "v"})
    assert ng.nodes[0].name == "mynode"
    assert ng.nodes[0].driver_opts == {"k": "v"}
    with pytest.raises(ValueError, match="invalid name"):
        ng.update("9bad", "e2", None, True, True, None, "", None)


def test_config_file_loaded(tmp_path):
    cfg = tmp_path / "buildkitd.toml"
    cfg.write_text('debug = true\n')
    ng = NodeGroup(name="b")
    ng.update("n", "e", None, True, True, None, str(cfg), None)
    assert "buildkitd.toml" in ng.nodes[0].files
    assert b"debug" in ng.nodes[0].files["buildkitd.toml"]


@pytest.mark.parametrize(
    "name,expected",
    [("mybuild", "mybuild"), ("MyBuild", "mybuild"), ("a.b-c_d", "a.b-c_d")],
)
def test_validate_name_ok(name, expected):
    assert validate_name(name) == expected


@pytest.mark.parametrize("name", ["", "1abc", "foo/bar", "-x", "a b"])
def test_validate_name_invalid(name):
    with pytest.raises(ValueError, match="invalid name"):
        validate_name(name)


def test_dict_round_trip():
    ng = NodeGroup(name="b", driver="d", dynamic=False)
    ng.update("n", "e", ["linux/arm64", "linux/amd64"], True, True, ["--x"], "", {"o": "1"})
    ng.nodes[0].files = {"f": b"\x00\x01data"}
    data = ng.to_dict()
    assert data["Nodes"][0]["Platforms"][0] == {"architecture": "arm64", "os": "linux"}
    restored = NodeGroup.from_dict(data)
    assert restored == ng