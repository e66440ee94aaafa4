from __future__ import annotations

import socket
import threading
from typing import Optional

from kvdict.common.ids import make_conn_id
from kvdict.log import ContextLogger, get_logger

from .handler import DictHandler
from .listen import ListenAddress
from .protocol import (
    RESP_FAILURE,
    DictError,
    ProtocolViolation,
    Response,
    encode_end_of_stream,
    parse_frame,
)

# Longest accepted request line, terminator excluded.
MAX_LINE_BYTES = 1024 * 1024


class ConnectionClosed(Exception):
    """Raised to leave the read loop after a fatal protocol violation."""


class DictConnection:
    """One client socket: sequential read -> dispatch -> write loop."""

    def __init__(
        self,
        sock: socket.socket,
        remote_addr: str,
        handler: DictHandler,
        base_log: ContextLogger,
        *,
        max_line_bytes: int = MAX_LINE_BYTES,
    ) -> None:
        self.sock = sock
        self.max_line_bytes = max_line_bytes
        self.id = make_conn_id()
        self.remote_addr = remote_addr
        self.handler = handler
        self.log = base_log.bind(conn_id=self.id, remote_addr=remote_addr)

    # ---- ResponseWriter ----
    def respond(self, status: str, *values: str) -> None:
        data = Response(status, values).encode()
        self.log.debug("Sending a line", extra={"fields": {"raw_response": data}})
        self.sock.sendall(data)

    def respond_empty_line(self) -> None:
        self.log.debug("Sending an empty line", extra={"fields": {"raw_response": b"\n"}})
        self.sock.sendall(encode_end_of_stream())

    # ---- loop ----
    def serve(self, stop: Optional[threading.Event] = None) -> None:
        self.log.info("Handling new connection")
        with self.sock:
            buf = b""
            while stop is None or not stop.is_set():
                try:
                    chunk = self.sock.recv(4096)
                except OSError as e:
                    self.log.error("Error reading data", extra={"fields": {"error": str(e)}})
                    return
                if not chunk:
                    self.log.info("Connection closed")
                    return
                buf += chunk
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    try:
                        self._handle_line(line)
                    except ConnectionClosed:
                        return
                    except OSError as e:
                        self.log.error("Error writing data", extra={"fields": {"error": str(e)}})
                        return
                if len(buf) > self.max_line_bytes:
                    self.log.error("Request line too long, closing connection", extra={"fields": {"buffered": len(buf)}})
                    return

    def _handle_line(self, line: bytes) -> None:
        req = parse_frame(line)
        if req is None:
            self.log.debug("Received an empty line")
            return
        self.log.debug("Received a line", extra={"fields": {"raw_request": line}})

        log = self.log.bind(command=req.command)
        try:
            self.handler.handle(req, self, log)
        except ProtocolViolation as e:
            if e.fatal:
                self._fatal(e, log)
            log.error("Handler returned with an error", extra={"fields": {"error": str(e)}})
            self.respond(RESP_FAILURE, str(e))
        except DictError as e:
            log.error("Handler returned with an error", extra={"fields": {"error": str(e)}})
            self.respond(RESP_FAILURE, str(e))
        except OSError:
            raise
        except Exception as e:
            log.exception("Unexpected error while handling a request")
            self.respond(RESP_FAILURE, str(e) or type(e).__name__)

    def _fatal(self, e: ProtocolViolation, log: ContextLogger) -> None:
        log.error("Fatal protocol violation, closing connection", extra={"fields": {"error": str(e)}})
        try:
            self.respond(RESP_FAILURE, str(e))
        except OSError as we:
            log.warning("Failed to respond with an error", extra={"fields": {"error": str(we)}})
        raise ConnectionClosed()


class DictServer:
    """Multi-client dict server (thread-per-connection)."""

    def __init__(
        self,
        listen: ListenAddress,
        handler: DictHandler,
        *,
        log: Optional[ContextLogger] = None,
        max_line_bytes: int = MAX_LINE_BYTES,
    ) -> None:
        self.max_line_bytes = max_line_bytes
        self.listen = listen
        self.handler = handler
        self.log = log or get_logger("kvdict.server")
        self._stop = threading.Event()
        self._sock: Optional[socket.socket] = None
        self._ready = threading.Event()

    @property
    def address(self) -> Optional[object]:
        """Bound socket address once listening (useful with tcp port 0)."""
        return self._sock.getsockname() if self._sock is not None else None

    def wait_ready(self, timeout_s: float = 5.0) -> bool:
        return self._ready.wait(timeout_s)

    def stop(self) -> None:
        self._stop.set()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                self.log.error("Failed to close listener", extra={"fields": {"error": str(e)}})

    def serve_forever(self) -> None:
        s = self.listen.bind()
        self._sock = s
        with s:
            s.settimeout(0.5)
            self.log.info("Listening", extra={"fields": {"address": str(self.listen)}})
            self._ready.set()

            while not self._stop.is_set():
                try:
                    conn, addr = s.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop.is_set():
                        break
                    self.log.error("Error accepting connection", extra={"fields": {"error": str(e)}})
                    continue
                conn.settimeout(None)
                c = DictConnection(
                    conn, _addr_label(addr, self.listen), self.handler, self.log, max_line_bytes=self.max_line_bytes
                )
                threading.Thread(target=c.serve, args=(self._stop,), name=f"conn-{c.id}", daemon=True).start()

            self.log.info("Shutdown complete")


def _addr_label(addr: object, listen: ListenAddress) -> str:
    if isinstance(addr, tuple) and len(addr) >= 2:
        return f"{addr[0]}:{addr[1]}"
    return str(addr) or str(listen)
