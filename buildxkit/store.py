"""On-disk store of builder instances and the current selection."""

from __future__ import annotations

import hashlib
import json
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator

from filelock import FileLock

from buildxkit.nodegroup import NodeGroup, validate_name


def _to_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:20]


def _atomic_write(path: str, data: bytes) -> None:
    directory = os.path.dirname(path)
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=".tmp-" + os.path.basename(path))
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, 0o600)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path, ignore_errors=True)
    else:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


class Store:
    """A directory holding builder instances, defaults and the current choice."""

    def __init__(self, root: str) -> None:
        self.root = root
        os.makedirs(os.path.join(root, "instances"), mode=0o700, exist_ok=True)
        os.makedirs(os.path.join(root, "defaults"), mode=0o700, exist_ok=True)

    @contextmanager
    def txn(self) -> Iterator[Txn]:
        """Hold the store lock for the duration of the block."""
        with FileLock(os.path.join(self.root, ".lock")):
            yield Txn(self)


class Txn:
    """Operations on a locked store."""

    def __init__(self, store: Store) -> None:
        self._root = store.root

    def _instances(self) -> str:
        return os.path.join(self._root, "instances")

    def list(self) -> list[NodeGroup]:
        """Return all stored node groups sorted by name; drop unreadable leftovers."""
        groups: list[NodeGroup] = []
        for entry in os.listdir(self._instances()):
            try:
                groups.append(self.node_group_by_name(entry))
            except FileNotFoundError:
                _remove_all(os.path.join(self._instances(), entry))
        groups.sort(key=lambda ng: ng.name)
        return groups

    def node_group_by_name(self, name: str) -> NodeGroup:
        """Load a node group; raises FileNotFoundError if it does not exist."""
        name = validate_name(name)
        with open(os.path.join(self._instances(), name), "rb") as fh:
            data = json.loads(fh.read())
        return NodeGroup.from_dict(data)

    def save(self, node_group: NodeGroup) -> None:
        """Write a node group under its validated name."""
        name = validate_name(node_group.name)
        data = json.dumps(node_group.to_dict()).encode("utf-8")
        _atomic_write(os.path.join(self._instances(), name), data)

    def remove(self, name: str) -> None:
        """Delete a node group if present."""
        name = validate_name(name)
        _remove_all(os.path.join(self._instances(), name))

    def set_current(self, key: str, name: str, global_: bool, default: bool) -> None:
        """Select the current builder for a key, optionally globally or as default."""
        self._write_current(key, name, global_)
        default_path = os.path.join(self._root, "defaults", _to_hash(key))
        if default:
            _atomic_write(default_path, name.encode("utf-8"))
        else:
            _remove_all(default_path)

    def _write_current(self, key: str, name: str, global_: bool) -> None:
        data = json.dumps({"Key": key, "Name": name, "Global": global_}).encode("utf-8")
        _atomic_write(os.path.join(self._root, "current"), data)

    def _reset(self, key: str) -> None:
        self._write_current(key, "", False)

    def _try_load(self, name: str) -> NodeGroup | None:
        try:
            return self.node_group_by_name(name)
        except (OSError, ValueError):
            return None

    def current(self, key: str) -> NodeGroup | None:
        """Return the builder selected for a key, or None."""
        try:
            with open(os.path.join(self._root, "current"), "rb") as fh:
                raw: bytes | None = fh.read()
        except FileNotFoundError:
            raw = None

        if raw is not None:
            selection = json.loads(raw)
            name = selection.get("Name", "")
            if name:
                if selection.get("Global", False):
                    ng = self._try_load(name)
                    if ng is not None:
                        return ng
                if selection.get("Key", "") == key:
                    return self._try_load(name)

        try:
            with open(os.path.join(self._root, "defaults", _to_hash(key)), "rb") as fh:
                default_name = fh.read().decode("utf-8")
        except FileNotFoundError:
            self._reset(key)
            return None

        ng = self._try_load(default_name)
        if ng is None:
            self._reset(key)
        self.set_current(key, default_name, False, True)
        return ng