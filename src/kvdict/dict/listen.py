from __future__ import annotations

import os
import socket
import stat
from dataclasses import dataclass
from urllib.parse import urlsplit

DEFAULT_LISTEN = "unix:///run/dovecot2/auth-dict-service.socket"


@dataclass(frozen=True)
class ListenAddress:
    network: str  # "tcp" | "unix"
    address: str

    @classmethod
    def parse(cls, value: str) -> "ListenAddress":
        """Parse ``tcp://host:port`` or ``unix:///path/to/socket``."""
        u = urlsplit(value.strip())
        if u.scheme == "tcp":
            if u.port is None:
                raise ValueError(f"tcp listen address needs a port: {value!r}")
            return cls("tcp", u.netloc)
        if u.scheme == "unix":
            if not u.path:
                raise ValueError(f"unix listen address needs a path: {value!r}")
            return cls("unix", u.path)
        raise ValueError("unacceptable scheme, only 'tcp' and 'unix' are permitted")

    def __str__(self) -> str:
        return f"{self.network}://{self.address}"

    def host_port(self) -> tuple[str, int]:
        u = urlsplit(str(self))
        return u.hostname or "", int(u.port or 0)

    def bind(self, backlog: int = 128) -> socket.socket:
        if self.network == "tcp":
            host, port = self.host_port()
            family = socket.AF_INET6 if ":" in host else socket.AF_INET
            s = socket.socket(family, socket.SOCK_STREAM)
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            target: object = (host, port)
        else:
            _remove_stale_socket(self.address)
            s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            target = self.address
        try:
            s.bind(target)
            s.listen(backlog)
        except OSError:
            s.close()
            raise
        return s


def _remove_stale_socket(path: str) -> None:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return
    if stat.S_ISSOCK(st.st_mode):
        os.unlink(path)
