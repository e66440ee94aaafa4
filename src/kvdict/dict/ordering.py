from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass
class KeyValuePair:
    key: str
    value: str = ""


def sort_by_key(pairs: List[KeyValuePair]) -> None:
    pairs.sort(key=lambda p: p.key)


def sort_by_value(pairs: List[KeyValuePair]) -> None:
    # Ties on value fall back to the key.
    pairs.sort(key=lambda p: (p.value, p.key))
