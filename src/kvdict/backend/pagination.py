from __future__ import annotations

from typing import List, Optional

from kvdict.backend.base import KeyValueBackend
from kvdict.common.time import Deadline
from kvdict.dict.ordering import KeyValuePair
from kvdict.dict.protocol import BackendError
from kvdict.log import ContextLogger

DEFAULT_SCAN_COUNT = 100
DEFAULT_MAX_SCAN_ROUNDS = 100_000


def iterate(
    backend: KeyValueBackend,
    match: str,
    with_values: bool,
    max_rows: int,
    *,
    log: ContextLogger,
    deadline: Optional[Deadline] = None,
    scan_count: int = DEFAULT_SCAN_COUNT,
    max_scan_rounds: int = DEFAULT_MAX_SCAN_ROUNDS,
) -> List[KeyValuePair]:
    """Collect keys matching `match` by cursor scan, then bulk-fetch values.

    Scanning stops once the cursor wraps to 0 or, when `max_rows` > 0, once
    `max_rows` keys were collected (extra keys from the last batch are cut).
    Keys that vanish or hold a non-string value between SCAN and MGET keep an
    empty value. Result order is scan order.
    """
    deadline = deadline or Deadline.never()
    count = max_rows if max_rows > 0 else scan_count

    result: List[KeyValuePair] = []
    cursor = 0
    rounds = 0
    while True:
        if rounds >= max_scan_rounds:
            raise BackendError(f"scan of {match!r} did not complete within {max_scan_rounds} rounds")
        rounds += 1
        keys, cursor = backend.scan(cursor, match, count, deadline=deadline)
        result.extend(KeyValuePair(key=k) for k in keys)
        if cursor == 0 or (max_rows > 0 and len(result) >= max_rows):
            break

    if max_rows > 0:
        del result[max_rows:]
    log.debug("Scan finished", extra={"fields": {"match": match, "rounds": rounds, "rows": len(result)}})

    if with_values and result:
        values = backend.mget([p.key for p in result], deadline=deadline)
        for i, pair in enumerate(result):
            value = values[i] if i < len(values) else None
            if value is None:
                log.warning("Key has disappeared between SCAN and MGET", extra={"fields": {"key": pair.key}})
                continue
            if not isinstance(value, str):
                log.warning("Key contains a non-string value", extra={"fields": {"key": pair.key}})
                continue
            pair.value = value

    return result


def lookup(backend: KeyValueBackend, key: str, *, deadline: Optional[Deadline] = None) -> Optional[str]:
    """Point lookup. An empty stored string counts as not found."""
    value = backend.get(key, deadline=deadline or Deadline.never())
    if not value:
        return None
    return value
