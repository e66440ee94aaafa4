from __future__ import annotations

from typing import Optional, Protocol

from kvdict.backend.base import KeyValueBackend
from kvdict.backend.pagination import DEFAULT_MAX_SCAN_ROUNDS, DEFAULT_SCAN_COUNT, iterate, lookup
from kvdict.common.time import Deadline
from kvdict.log import ContextLogger

from .bitflags import (
    FLAG_ASYNC,
    FLAG_EXACT_KEY,
    FLAG_NO_VALUE,
    FLAG_RECURSE,
    FLAG_SORT_BY_KEY,
    FLAG_SORT_BY_VALUE,
    has,
    parse_bitflags,
    parse_max_rows,
)
from .ordering import sort_by_key, sort_by_value
from .protocol import (
    CMD_HELLO,
    CMD_ITERATE,
    CMD_LOOKUP,
    PROTOCOL_MAJOR,
    RESP_FAILURE,
    RESP_NOT_FOUND,
    RESP_OK,
    SHARED_PREFIX,
    ProtocolViolation,
    Request,
    RequestInvalid,
)


class ResponseWriter(Protocol):
    def respond(self, status: str, *values: str) -> None: ...

    def respond_empty_line(self) -> None: ...


class DictHandler:
    """Stateless command dispatcher; one instance serves every connection."""

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        scan_count: int = DEFAULT_SCAN_COUNT,
        max_scan_rounds: int = DEFAULT_MAX_SCAN_ROUNDS,
        backend_timeout_s: Optional[float] = None,
    ) -> None:
        self.backend = backend
        self.scan_count = scan_count
        self.max_scan_rounds = max_scan_rounds
        self.backend_timeout_s = backend_timeout_s

    def handle(self, req: Request, out: ResponseWriter, log: ContextLogger) -> None:
        """Execute one request, writing its response(s) to `out`.

        Raises DictError subclasses for anything the client should see as a
        failure response; the connection turns them into `F` lines.
        """
        if req.command == CMD_HELLO:
            self._hello(req)
        elif req.command == CMD_LOOKUP:
            self._lookup(req, out, log)
        elif req.command == CMD_ITERATE:
            self._iterate(req, out, log)
        else:
            out.respond(RESP_FAILURE, "unsupported command")

    def _deadline(self) -> Deadline:
        return Deadline(self.backend_timeout_s)

    # HELLO: major, minor, value type, obsolete user, dict name
    def _hello(self, req: Request) -> None:
        if len(req.args) != 5:
            raise ProtocolViolation(f"protocol error: expected 5 arguments, received {len(req.args)}", fatal=True)
        if req.args[0] != PROTOCOL_MAJOR:
            raise ProtocolViolation(f"incompatible major protocol version '{req.args[0]}'", fatal=True)
        # No response on success.

    # LOOKUP: key, user
    def _lookup(self, req: Request, out: ResponseWriter, log: ContextLogger) -> None:
        if len(req.args) != 2:
            raise ProtocolViolation(f"expected 2 arguments, received {len(req.args)}")
        key = req.args[0]
        log.info("Received a lookup request", extra={"fields": {"key": key}})

        if key.startswith(SHARED_PREFIX):
            log.debug("Stripped the shared prefix", extra={"fields": {"key": key}})
            key = key[len(SHARED_PREFIX):]

        value = lookup(self.backend, key, deadline=self._deadline())
        if value is None:
            out.respond(RESP_NOT_FOUND)
            return
        out.respond(RESP_OK, value)

    # ITERATE: flags, max rows, path, user
    def _iterate(self, req: Request, out: ResponseWriter, log: ContextLogger) -> None:
        if len(req.args) != 4:
            raise ProtocolViolation(f"expected 4 arguments, received {len(req.args)}")

        flags = parse_bitflags(req.args[0])
        if has(flags, FLAG_ASYNC):
            raise RequestInvalid("asynchronous iteration is not supported")
        if has(flags, FLAG_RECURSE):
            log.info("Recursion to all sub-hierarchies was requested")
        if has(flags, FLAG_SORT_BY_KEY) and has(flags, FLAG_SORT_BY_VALUE):
            raise RequestInvalid("must request either sorting by key or value, not both")

        max_rows = parse_max_rows(req.args[1])

        match = req.args[2] if has(flags, FLAG_EXACT_KEY) else req.args[2] + "*"
        prefix = ""
        if match.startswith(SHARED_PREFIX):
            prefix = SHARED_PREFIX
            log.debug("Stripped the shared prefix", extra={"fields": {"match": match}})
            match = match[len(SHARED_PREFIX):]

        log.info("Received an iterate request", extra={"fields": {"match": match, "max_rows": max_rows}})

        with_values = not has(flags, FLAG_NO_VALUE)
        result = iterate(
            self.backend,
            match,
            with_values,
            max_rows,
            log=log,
            deadline=self._deadline(),
            scan_count=self.scan_count,
            max_scan_rounds=self.max_scan_rounds,
        )

        if has(flags, FLAG_SORT_BY_KEY):
            sort_by_key(result)
        elif has(flags, FLAG_SORT_BY_VALUE):
            sort_by_value(result)

        for item in result:
            key = prefix + item.key
            if with_values:
                out.respond(RESP_OK, key, item.value)
            else:
                out.respond(RESP_OK, key)
        out.respond_empty_line()
