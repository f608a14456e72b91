"""Builder node groups: membership, updates and platform ownership."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from buildxkit.confutil import load_config_files
from buildxkit.platforms import Platform, format_platform, parse

_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9.\-_]*$")


def validate_name(name: str) -> str:
    """Check a builder or node name and return it lower-cased."""
    if not _NAME_PATTERN.match(name):
        raise ValueError(
            f"invalid name {name}, name needs to start with a letter and may not "
            "contain symbols, except ._-"
        )
    return name.lower()


def _platform_to_dict(p: Platform) -> dict[str, Any]:
    out: dict[str, Any] = {"architecture": p.architecture, "os": p.os}
    if p.os_version:
        out["os.version"] = p.os_version
    if p.os_features:
        out["os.features"] = list(p.os_features)
    if p.variant:
        out["variant"] = p.variant
    return out


def _platform_from_dict(data: dict[str, Any]) -> Platform:
    return Platform(
        os=data.get("os", ""),
        architecture=data.get("architecture", ""),
        variant=data.get("variant", ""),
        os_version=data.get("os.version", ""),
        os_features=tuple(data.get("os.features") or ()),
    )


@dataclass
class Node:
    """A single builder node."""

    name: str
    endpoint: str = ""
    platforms: list[Platform] = field(default_factory=list)
    flags: list[str] | None = None
    driver_opts: dict[str, str] | None = None
    files: dict[str, bytes] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "Endpoint": self.endpoint,
            "Platforms": [_platform_to_dict(p) for p in self.platforms] or None,
            "Flags": self.flags,
            "DriverOpts": self.driver_opts,
            "Files": None
            if self.files is None
            else {k: base64.b64encode(v).decode("ascii") for k, v in self.files.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        files = data.get("Files")
        return cls(
            name=data.get("Name", ""),
            endpoint=data.get("Endpoint", ""),
            platforms=[_platform_from_dict(p) for p in data.get("Platforms") or ()],
            flags=data.get("Flags"),
            driver_opts=data.get("DriverOpts"),
            files=None if files is None else {k: base64.b64decode(v) for k, v in files.items()},
        )


@dataclass
class NodeGroup:
    """A named group of builder nodes sharing one driver."""

    name: str = ""
    driver: str = ""
    nodes: list[Node] = field(default_factory=list)
    dynamic: bool = False

    def leave(self, name: str) -> None:
        """Remove a node from the group."""
        if self.dynamic:
            raise ValueError("dynamic node group does not support Leave")
        index = self._find_node(name)
        if index is None:
            raise KeyError(f"node {name!r} not found for {self.name}")
        if len(self.nodes) == 1:
            raise ValueError("can not leave last node, do you want to rm instance instead?")
        del self.nodes[index]

    def update(
        self,
        name: str,
        endpoint: str,
        platforms: Iterable[str] | None,
        endpoints_set: bool,
        action_append: bool,
        flags: list[str] | None,
        config_file: str,
        driver_opts: dict[str, str] | None,
    ) -> None:
        """Change an existing node or add a new one."""
        if self.dynamic:
            raise ValueError("dynamic node group does not support Update")
        platform_strings = list(platforms or ())
        index = self._find_node(name)
        if index is None and not action_append:
            if self.nodes:
                raise KeyError(f"node {name} not found, did you mean to append?")
            self.nodes = []

        parsed = parse(platform_strings)

        if index is not None:
            node = self.nodes[index]
            if endpoints_set:
                node.endpoint = endpoint
            if platform_strings:
                node.platforms = parsed
            if flags is not None:
                node.flags = flags
            self._validate_duplicates(endpoint, index)
            return

        if not name:
            name = self._next_node_name()
        name = validate_name(name)

        node = Node(
            name=name,
            endpoint=endpoint,
            platforms=parsed,
            flags=flags,
            driver_opts=driver_opts,
        )
        if config_file:
            node.files = load_config_files(config_file)

        self.nodes.append(node)
        self._validate_duplicates(endpoint, len(self.nodes) - 1)

    def to_dict(self) -> dict[str, Any]:
        """Return the group as JSON-ready data."""
        return {
            "Name": self.name,
            "Driver": self.driver,
            "Nodes": [n.to_dict() for n in self.nodes] or None,
            "Dynamic": self.dynamic,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeGroup:
        """Build a group from data produced by ``to_dict``."""
        return cls(
            name=data.get("Name", ""),
            driver=data.get("Driver", ""),
            nodes=[Node.from_dict(n) for n in data.get("Nodes") or ()],
            dynamic=bool(data.get("Dynamic", False)),
        )

    def _validate_duplicates(self, endpoint: str, index: int) -> None:
        if sum(1 for n in self.nodes if n.endpoint == endpoint) > 1:
            raise ValueError(f"invalid duplicate endpoint {endpoint}")
        owned = {format_platform(p) for p in self.nodes[index].platforms}
        for i, node in enumerate(self.nodes):
            if i != index:
                node.platforms = [p for p in node.platforms if format_platform(p) not in owned]

    def _find_node(self, name: str) -> int | None:
        return next((i for i, n in enumerate(self.nodes) if n.name == name), None)

    def _next_node_name(self) -> str:
        i = 0
        while self._find_node(f"{self.name}{i}") is not None:
            i += 1
        return f"{self.name}{i}"