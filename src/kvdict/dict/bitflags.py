from __future__ import annotations

from .protocol import RequestInvalid

FLAG_RECURSE = 0x01
FLAG_SORT_BY_KEY = 0x02
FLAG_SORT_BY_VALUE = 0x04
FLAG_NO_VALUE = 0x08
FLAG_EXACT_KEY = 0x10
FLAG_ASYNC = 0x20

_MAX_FLAGS = (1 << 64) - 1


def parse_bitflags(value: str) -> int:
    """Parse a non-negative decimal bitmask that fits in 64 bits."""
    if not value.isascii() or not value.isdigit():
        raise RequestInvalid(f"malformed flags value: {value!r}")
    flags = int(value, 10)
    if flags > _MAX_FLAGS:
        raise RequestInvalid(f"malformed flags value: {value!r} is out of range")
    return flags


def has(flags: int, flag: int) -> bool:
    return flags & flag != 0


def parse_max_rows(value: str) -> int:
    """Parse an optionally signed ASCII decimal integer (no spaces or underscores)."""
    digits = value[1:] if value[:1] in ("+", "-") else value
    if not digits.isascii() or not digits.isdigit():
        raise RequestInvalid(f"malformed max rows value: {value!r}")
    return int(value, 10)
