from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import redis

from kvdict.backend.base import KeyValueBackend, check_deadline
from kvdict.common.time import Deadline
from kvdict.dict.protocol import BackendError


class RedisBackend(KeyValueBackend):
    """redis-py client over a shared connection pool (thread-safe)."""

    def __init__(self, client: "redis.Redis") -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, timeout_s: Optional[float] = None) -> "RedisBackend":
        try:
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                encoding_errors="surrogateescape",
                socket_timeout=timeout_s,
                socket_connect_timeout=timeout_s,
            )
        except ValueError as e:
            raise ValueError(f"Invalid Redis URL: {url}: {e}") from e
        return cls(client)

    def get(self, key: str, *, deadline: Deadline) -> Optional[str]:
        check_deadline(deadline, "GET")
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            raise BackendError(str(e)) from e
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def scan(self, cursor: int, match: str, count: int, *, deadline: Deadline) -> Tuple[List[str], int]:
        check_deadline(deadline, "SCAN")
        try:
            next_cursor, keys = self._client.scan(cursor=cursor, match=match, count=count)
        except redis.RedisError as e:
            raise BackendError(str(e)) from e
        return list(keys), int(next_cursor)

    def mget(self, keys: Sequence[str], *, deadline: Deadline) -> List[Any]:
        check_deadline(deadline, "MGET")
        if not keys:
            return []
        try:
            return list(self._client.mget(list(keys)))
        except redis.RedisError as e:
            raise BackendError(str(e)) from e

    def close(self) -> None:
        self._client.close()
