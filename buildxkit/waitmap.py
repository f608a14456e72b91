"""A string-keyed map whose readers block until the keys they ask for are set."""

from __future__ import annotations

import threading
import time
from typing import Any


class WaitMap:
    """Thread-safe map where ``get`` waits for keys to be set."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._cond = threading.Condition()

    def set(self, key: str, value: Any) -> None:
        """Store a value and wake any readers waiting for the key."""
        with self._cond:
            self._values[key] = value
            self._cond.notify_all()

    def get(self, *args: str, timeout: float | None = None) -> dict[str, Any]:
        """Return the values of the given keys, waiting until each is set.

        Raises TimeoutError if the keys are not all set within ``timeout`` seconds.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        out: dict[str, Any] = {}
        with self._cond:
            for key in args:
                remaining = None if deadline is None else deadline - time.monotonic()
                if not self._cond.wait_for(lambda: key in self._values, timeout=remaining):
                    raise TimeoutError(f"timed out waiting for key {key!r}")
                out[key] = self._values[key]
        return out