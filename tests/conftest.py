from __future__ import annotations

import fnmatch
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from kvdict.backend.base import KeyValueBackend, check_deadline
from kvdict.common.time import Deadline
from kvdict.log import ContextLogger


class FakeBackend(KeyValueBackend):
    """In-memory backend.

    `batches` (if set) scripts SCAN replies by cursor: {cursor: (keys, next)}.
    Otherwise SCAN walks `data` in insertion order, `count` keys per step.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(data or {})
        self.batches: Optional[Dict[int, Tuple[List[str], int]]] = None
        self.mget_override: Optional[List[Any]] = None
        self.fail_on: set[str] = set()
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, Any]] = []

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            if self.error is not None:
                raise self.error
            from kvdict.dict.protocol import BackendError

            raise BackendError(f"{op} failed: connection refused")

    def get(self, key: str, *, deadline: Deadline) -> Optional[str]:
        check_deadline(deadline, "GET")
        self.calls.append(("get", key))
        self._maybe_fail("get")
        v = self.data.get(key)
        return v if v is None or isinstance(v, str) else None

    def scan(self, cursor: int, match: str, count: int, *, deadline: Deadline) -> Tuple[List[str], int]:
        check_deadline(deadline, "SCAN")
        self.calls.append(("scan", (cursor, match, count)))
        self._maybe_fail("scan")
        if self.batches is not None:
            return self.batches[cursor]
        keys = [k for k in self.data if fnmatch.fnmatchcase(k, match)]
        chunk = keys[cursor:cursor + count]
        nxt = cursor + count
        return chunk, (nxt if nxt < len(keys) else 0)

    def mget(self, keys: Sequence[str], *, deadline: Deadline) -> List[Any]:
        check_deadline(deadline, "MGET")
        self.calls.append(("mget", list(keys)))
        self._maybe_fail("mget")
        if self.mget_override is not None:
            return list(self.mget_override)
        return [self.data.get(k) for k in keys]


class RecordingWriter:
    def __init__(self) -> None:
        self.lines: List[bytes] = []

    def respond(self, status: str, *values: str) -> None:
        from kvdict.dict.protocol import encode_response

        self.lines.append(encode_response(status, *values))

    def respond_empty_line(self) -> None:
        self.lines.append(b"\n")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def log() -> ContextLogger:
    return ContextLogger(logging.getLogger("kvdict.test"), {"conn_id": "test"})
