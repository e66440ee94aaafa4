from __future__ import annotations

import time
from typing import Optional


def monotonic() -> float:
    return time.monotonic()


class Deadline:
    """Point in monotonic time after which backend calls must not start.

    `Deadline(None)` never expires.
    """

    def __init__(self, timeout_s: Optional[float]) -> None:
        self.timeout_s = timeout_s
        self._at = None if timeout_s is None else monotonic() + float(timeout_s)

    @classmethod
    def never(cls) -> "Deadline":
        return cls(None)

    def expired(self) -> bool:
        return self._at is not None and monotonic() >= self._at
