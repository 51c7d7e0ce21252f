"""Listening socket that turns incoming connections into peers."""

import logging
import socket
from typing import Optional, Tuple

from ..exceptions import BindError, NotConnectedError
from ..utils.logging_utils import log_connection_event
from .connection import Connection

logger = logging.getLogger(__name__)


def open_listen_socket(host: str, port: int, backlog: int) -> socket.socket:
    """Create, bind and listen, raising BindError if the address is unavailable."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        raise BindError(
            f"Cannot listen on {host}:{port}: {e.strerror or e}",
            {"host": host, "port": port},
            original_exception=e,
        ) from e
    return sock


class Listener:
    """Binds one address and accepts new connections."""

    def __init__(
        self,
        host: str,
        port: int,
        backlog: int = 128,
        write_timeout: Optional[float] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.backlog = backlog
        self.write_timeout = write_timeout
        self._sock: Optional[socket.socket] = None

    def bind(self) -> None:
        """Start listening.

        Raises:
            BindError: If the port is unavailable.
        """
        if self._sock is not None:
            return
        self._sock = open_listen_socket(self.host, self.port, self.backlog)
        log_connection_event(logger, "Listening", *self.address)

    @property
    def bound(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> Tuple[str, int]:
        """The actually bound ``(host, port)``; resolves an ephemeral port."""
        if self._sock is None:
            return (self.host, self.port)
        host, port = self._sock.getsockname()[:2]
        return (host, port)

    def fileno(self) -> int:
        if self._sock is None:
            raise NotConnectedError("Listener is not bound", {"port": self.port})
        return self._sock.fileno()

    def accept(self) -> Connection:
        """Accept one pending connection.

        Only called after the multiplexer reported the listener readable, so
        it does not hold up servicing of existing peers.
        """
        if self._sock is None:
            raise NotConnectedError("Listener is not bound", {"port": self.port})
        sock, address = self._sock.accept()
        return Connection(sock, address, write_timeout=self.write_timeout)

    def close(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.close()
        finally:
            self._sock = None
