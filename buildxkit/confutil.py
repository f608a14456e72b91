"""Location of the configuration store and loading of BuildKit daemon config."""

from __future__ import annotations

import errno
import logging
import os
import posixpath
from typing import Any

import toml

log = logging.getLogger(__name__)

DEFAULT_BUILDKIT_STATE_DIR = "/var/lib/buildkit"
DEFAULT_BUILDKIT_CONFIG_DIR = "/etc/buildkit"

_READ_LIMIT = 1024 * 1024


def config_dir(docker_config_path: str) -> str:
    """Return the configuration store directory.

    ``$BUILDX_CONFIG`` wins; otherwise a ``buildx`` directory next to the
    given Docker config file.
    """
    env = os.environ.get("BUILDX_CONFIG", "")
    if env:
        log.debug('using config store %r based in "$BUILDX_CONFIG" environment variable', env)
        return env
    path = os.path.join(os.path.dirname(docker_config_path), "buildx")
    log.debug("using default config store %r", path)
    return path


def default_config_file(config_root: str) -> str | None:
    """Return the default BuildKit config file in the store, if it exists."""
    path = posixpath.join(config_root, "buildkitd.default.toml")
    return path if os.path.exists(path) else None


def _load_config_tree(path: str) -> dict[str, Any] | None:
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise OSError(f"failed to load config from {path}: {exc}") from exc
    try:
        return toml.loads(text)
    except toml.TomlDecodeError as exc:
        raise ValueError(f"failed to parse config: {exc}") from exc


def _read_file(path: str) -> bytes:
    with open(path, "rb") as fh:
        return fh.read(_READ_LIMIT)


def _copy_file(path: str, prefix: str, kind: str, files: dict[str, bytes]) -> str:
    fp = posixpath.join(prefix, posixpath.basename(path))
    try:
        files[fp] = _read_file(path)
    except OSError as exc:
        raise OSError(f"failed to read {kind} file: {path}: {exc}") from exc
    return posixpath.join(DEFAULT_BUILDKIT_CONFIG_DIR, fp)


def load_config_files(path: str) -> dict[str, bytes]:
    """Load a BuildKit config and the registry certificates it refers to.

    Returns a mapping of container-relative paths to file contents; the
    rewritten config is under ``buildkitd.toml``.
    """
    try:
        os.stat(path)
    except FileNotFoundError as exc:
        raise FileNotFoundError(
            errno.ENOENT, f"buildkit configuration file not found: {path}", path
        ) from exc
    except OSError as exc:
        raise OSError(f"invalid buildkit configuration file: {path}: {exc}") from exc

    config = _load_config_tree(path) or {}
    files: dict[str, bytes] = {}

    registries = config.get("registry")
    if isinstance(registries, dict):
        for reg_name, reg_conf in registries.items():
            if not isinstance(reg_conf, dict):
                continue
            prefix = posixpath.join("certs", reg_name)
            cas = reg_conf.get("ca")
            if cas:
                reg_conf["ca"] = [_copy_file(ca, prefix, "CA", files) for ca in cas]
            keypairs = reg_conf.get("keypair")
            if not keypairs:
                continue
            for kp in keypairs:
                if not kp:
                    continue
                key = kp.get("key", "")
                if key:
                    kp["key"] = _copy_file(key, prefix, "key", files)
                cert = kp.get("cert", "")
                if cert:
                    kp["cert"] = _copy_file(cert, prefix, "cert", files)

    files["buildkitd.toml"] = toml.dumps(config).encode("utf-8")
    return files