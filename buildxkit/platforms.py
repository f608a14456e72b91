"""Parsing, normalising and formatting of OS/architecture platform specifiers."""

from __future__ import annotations

import platform as _host
import re
from dataclasses import dataclass, field, replace
from typing import Iterable

_SPECIFIER_PART = re.compile(r"^[A-Za-z0-9_-]+$")

_KNOWN_OS = frozenset(
    {
        "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
        "ios", "js", "linux", "nacl", "netbsd", "openbsd", "plan9", "solaris",
        "windows", "zos",
    }
)

_KNOWN_ARCH = frozenset(
    {
        "386", "amd64", "amd64p32", "arm", "armbe", "arm64", "arm64be", "ppc64",
        "ppc64le", "loong64", "mips", "mipsle", "mips64", "mips64le", "mips64p32",
        "mips64p32le", "ppc", "riscv", "riscv64", "s390", "s390x", "sparc",
        "sparc64", "wasm",
    }
)


@dataclass(frozen=True)
class Platform:
    """A target platform: operating system, architecture and optional variant."""

    os: str
    architecture: str
    variant: str = ""
    os_version: str = ""
    os_features: tuple[str, ...] = field(default_factory=tuple)


def _normalize_os(os_name: str) -> str:
    if not os_name:
        return os_name
    os_name = os_name.lower()
    if os_name == "macos":
        return "darwin"
    return os_name


def _normalize_arch(arch: str, variant: str) -> tuple[str, str]:
    arch, variant = arch.lower(), variant.lower()
    if arch == "i386":
        return "386", ""
    if arch in ("x86_64", "x86-64"):
        return "amd64", ""
    if arch in ("aarch64", "arm64"):
        return "arm64", "" if variant in ("8", "v8") else variant
    if arch == "armhf":
        return "arm", "v7"
    if arch == "armel":
        return "arm", "v6"
    if arch == "arm":
        if variant in ("", "7"):
            return "arm", "v7"
        if variant in ("5", "6", "8"):
            return "arm", "v" + variant
    return arch, variant


def normalize(platform: Platform) -> Platform:
    """Return the canonical form of a platform."""
    arch, variant = _normalize_arch(platform.architecture, platform.variant)
    return replace(platform, os=_normalize_os(platform.os), architecture=arch, variant=variant)


def default_spec() -> Platform:
    """Return the platform of the running host."""
    os_name = _normalize_os(_host.system()) or "linux"
    arch, variant = _normalize_arch(_host.machine() or "amd64", "")
    return normalize(Platform(os=os_name, architecture=arch, variant=variant))


def parse_platform(specifier: str) -> Platform:
    """Parse an ``os[/arch[/variant]]`` specifier into a platform."""
    if "*" in specifier:
        raise ValueError(f"{specifier!r}: wildcards not yet supported")
    parts = specifier.split("/")
    for part in parts:
        if not _SPECIFIER_PART.match(part):
            raise ValueError(f"{part!r}: invalid component in specifier {specifier!r}")

    if len(parts) == 1:
        os_name = _normalize_os(parts[0])
        if os_name in _KNOWN_OS:
            host = default_spec()
            return normalize(Platform(os=os_name, architecture=host.architecture, variant=host.variant))
        arch, variant = _normalize_arch(parts[0], "")
        if arch in _KNOWN_ARCH:
            return Platform(os=default_spec().os, architecture=arch, variant=variant)
        raise ValueError(f"{specifier!r}: unknown operating system or architecture")

    if len(parts) == 2:
        arch, variant = _normalize_arch(parts[1], "")
        if arch == "arm" and variant == "v7":
            variant = ""
        return Platform(os=_normalize_os(parts[0]), architecture=arch, variant=variant)

    if len(parts) == 3:
        arch, variant = _normalize_arch(parts[1], parts[2])
        if arch == "arm64" and variant == "":
            variant = "v8"
        return Platform(os=_normalize_os(parts[0]), architecture=arch, variant=variant)

    raise ValueError(f"{specifier!r}: cannot parse platform specifier")


def format_platform(platform: Platform) -> str:
    """Format a platform as ``os/arch[/variant]``."""
    if not platform.os:
        return "unknown"
    return "/".join(part for part in (platform.os, platform.architecture, platform.variant) if part)


def _parse_one(specifier: str) -> Platform:
    if specifier.lower() == "local":
        return default_spec()
    return parse_platform(specifier)


def parse(platform_strings: Iterable[str]) -> list[Platform]:
    """Parse platform strings, each possibly a comma separated list."""
    out: list[Platform] = []
    for spec in platform_strings or ():
        parts = spec.split(",")
        if len(parts) > 1:
            out.extend(parse(parts))
            continue
        out.append(normalize(_parse_one(spec)))
    return out


def dedupe(platforms: Iterable[Platform]) -> list[Platform]:
    """Normalise platforms and drop duplicates, keeping the first occurrence."""
    seen: set[str] = set()
    out: list[Platform] = []
    for p in platforms:
        p = normalize(p)
        key = format_platform(p)
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


def format_in_groups(*args: Iterable[Platform]) -> list[str]:
    """Format unique platforms across groups; the first group's are starred."""
    seen: set[str] = set()
    out: list[str] = []
    for index, group in enumerate(args):
        for p in group:
            key = format_platform(normalize(p))
            if key in seen:
                continue
            seen.add(key)
            out.append(key + "*" if index == 0 else key)
    return out


def format_platforms(platforms: Iterable[Platform]) -> list[str]:
    """Format each platform as a string."""
    return [format_platform(p) for p in platforms or ()]