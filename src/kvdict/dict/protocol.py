from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

# ==== Commands / statuses (protocol major version 3) ====
CMD_HELLO = "H"
CMD_LOOKUP = "L"
CMD_ITERATE = "I"

RESP_OK = "O"
RESP_NOT_FOUND = "N"
RESP_FAILURE = "F"

PROTOCOL_MAJOR = "3"

# Keys under this prefix live in the shared namespace of the backend.
SHARED_PREFIX = "shared/"

ESCAPE_MARKER = "\x01"

_ESCAPE_TABLE = {
    "\x00": ESCAPE_MARKER + "0",
    ESCAPE_MARKER: ESCAPE_MARKER + "1",
    "\t": ESCAPE_MARKER + "t",
    "\r": ESCAPE_MARKER + "r",
    "\n": ESCAPE_MARKER + "l",
}
_UNESCAPE_TABLE = {v[1]: k for k, v in _ESCAPE_TABLE.items()}

# Wire bytes are mapped 1:1 onto str so arbitrary bytes survive a round trip.
WIRE_ENCODING = "utf-8"
WIRE_ERRORS = "surrogateescape"


# ==== Error taxonomy ====
class DictError(Exception):
    """Base class for errors reported to the client as a failure response."""


class ProtocolViolation(DictError):
    """Wrong arity or incompatible handshake.

    A fatal violation closes the connection after the failure response.
    """

    def __init__(self, message: str, *, fatal: bool = False) -> None:
        super().__init__(message)
        self.fatal = fatal


class RequestInvalid(DictError):
    """Malformed or unsupported request arguments."""


class BackendError(DictError):
    """The key-value backend failed or timed out."""


def tab_escape(value: str) -> str:
    """Escape NUL, the marker, TAB, CR and LF so the value fits in one field."""
    if not any(ch in _ESCAPE_TABLE for ch in value):
        return value
    return "".join(_ESCAPE_TABLE.get(ch, ch) for ch in value)


def tab_unescape(value: str) -> str:
    """Reverse `tab_escape`.

    An unknown tag after the marker is kept without the marker. A marker at
    the very end of the field has no tag and is kept as is.
    """
    if ESCAPE_MARKER not in value:
        return value
    out: List[str] = []
    i = 0
    n = len(value)
    while i < n:
        ch = value[i]
        if ch == ESCAPE_MARKER and i + 1 < n:
            tag = value[i + 1]
            out.append(_UNESCAPE_TABLE.get(tag, tag))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


@dataclass(frozen=True)
class Request:
    command: str
    args: List[str]


@dataclass(frozen=True)
class Response:
    status: str
    values: Sequence[str] = ()

    def encode(self) -> bytes:
        return encode_response(self.status, *self.values)


def parse_frame(line: bytes) -> Optional[Request]:
    """Parse one request line into a Request.

    Grammar: <command byte><arg1>\\t<arg2>...\\n
    - The trailing LF (and a CR before it) is dropped.
    - Returns None for an empty line.
    - Unknown command bytes are still valid frames.
    """
    text = line.decode(WIRE_ENCODING, WIRE_ERRORS)
    if text.endswith("\n"):
        text = text[:-1]
    if text.endswith("\r"):
        text = text[:-1]
    if not text:
        return None
    return Request(command=text[0], args=[tab_unescape(a) for a in text[1:].split("\t")])


def encode_response(status: str, *values: str) -> bytes:
    fields = [status] + [tab_escape(v) for v in values]
    return ("\t".join(fields) + "\n").encode(WIRE_ENCODING, WIRE_ERRORS)


def encode_end_of_stream() -> bytes:
    return b"\n"

