from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

from kvdict.common.time import Deadline
from kvdict.dict.protocol import BackendError


class KeyValueBackend(ABC):
    """Read-only view of the key-value store shared by all connections.

    Implementations must be safe to call from many threads at once.
    """

    @abstractmethod
    def get(self, key: str, *, deadline: Deadline) -> Optional[str]:
        """Point lookup. A missing key returns None."""

    @abstractmethod
    def scan(self, cursor: int, match: str, count: int, *, deadline: Deadline) -> Tuple[List[str], int]:
        """One cursor step. Returns (keys, next_cursor); 0 means the cycle is done."""

    @abstractmethod
    def mget(self, keys: Sequence[str], *, deadline: Deadline) -> List[Any]:
        """Bulk fetch aligned with `keys`. Entries may be None or non-str."""

    def close(self) -> None:
        pass


def check_deadline(deadline: Deadline, op: str) -> None:
    if deadline.expired():
        raise BackendError(f"{op}: deadline of {deadline.timeout_s}s exceeded")
