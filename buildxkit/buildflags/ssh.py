"""Parsing of ``--ssh`` flag values and detection of SSH git remotes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

_IMPLICIT_SSH = re.compile(r"^[A-Za-z0-9_.\-]+@[A-Za-z0-9.\-]+:")


@dataclass
class AgentConfig:
    """An SSH agent socket or key files exposed to the build under an id."""

    id: str
    paths: list[str] = field(default_factory=list)


def parse_ssh(value: str) -> AgentConfig:
    """Parse ``id[=path[,path...]]``."""
    ident, sep, rest = value.partition("=")
    return AgentConfig(id=ident, paths=rest.split(",") if sep else [])


def parse_ssh_specs(values: Iterable[str]) -> list[AgentConfig]:
    """Parse every SSH specification."""
    return [parse_ssh(v) for v in values]


def is_git_ssh(url: str) -> bool:
    """Return True if the repository URL is accessed over SSH."""
    if url.startswith("ssh://"):
        return True
    if url.startswith(("http://", "https://", "git://")):
        return False
    return bool(_IMPLICIT_SSH.match(url))