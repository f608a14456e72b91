"""Parsing of ``--allow`` entitlement flag values."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class Entitlement(Enum):
    """A privilege a build may be granted."""

    SECURITY_INSECURE = "security.insecure"
    NETWORK_HOST = "network.host"


def parse_entitlements(values: Iterable[str]) -> list[Entitlement]:
    """Parse entitlement names; raises ValueError on an unknown one."""
    out: list[Entitlement] = []
    for value in values:
        try:
            out.append(Entitlement(value))
        except ValueError:
            raise ValueError(f"invalid entitlement: {value}") from None
    return out