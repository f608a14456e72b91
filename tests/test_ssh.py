import pytest

from buildxkit.buildflags.ssh import AgentConfig, is_git_ssh, parse_ssh, parse_ssh_specs


def test_id_only():
    assert parse_ssh("default") == AgentConfig(id="default", paths=[])


def test_id_with_paths():
    assert parse_ssh("mykey=/keys/a,/keys/b") == AgentConfig(id="mykey", paths=["/keys/a", "/keys/b"])


def test_specs():
    configs = parse_ssh_specs(["default", "other=/sock"])
    assert [c.id for c in configs] == ["default", "other"]
    assert configs[1].paths == ["/sock"]


@pytest.mark.parametrize(
    "url, expected",
    [
        ("ssh://git@example.com/repo.git", True),
        ("git@example.com:user/repo.git", True),
        ("https://example.com/repo.git", False),
        ("http://example.com/repo.git", False),
        ("git://example.com/repo.git", False),
        ("/local/path/repo", False),
    ],
)
def test_is_git_ssh(url, expected):
    assert is_git_ssh(url) is expected