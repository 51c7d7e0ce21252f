"""A single accepted stream connection owned by the relay."""

import logging
import socket
from typing import Optional, Tuple

from ..utils.logging_utils import format_address, log_debug_operation

logger = logging.getLogger(__name__)


class Connection:
    """Live bidirectional byte stream wrapping an accepted socket.

    Usable as a selector file object (``fileno()``). Once closed it is never
    reused.
    """

    def __init__(
        self,
        sock: socket.socket,
        address: Optional[Tuple[str, int]] = None,
        write_timeout: Optional[float] = None,
    ) -> None:
        self._sock = sock
        self.address = address
        self._closed = False
        self._stream_broken = False
        # A timeout applies to both directions; reads only happen after the
        # multiplexer reported readiness so they never wait on it.
        self._sock.settimeout(write_timeout)
        self.name = format_address(address)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stream_broken(self) -> bool:
        """True once a write failed after part of its data went out."""
        return self._stream_broken

    def fileno(self) -> int:
        return self._sock.fileno()

    def recv(self, size: int) -> bytes:
        """One bounded read. ``b""`` means the peer closed its side."""
        return self._sock.recv(size)

    def send(self, data: bytes) -> None:
        """Write all of ``data`` or raise ``OSError``.

        A failure after some bytes were written leaves the peer holding a
        cut-off chunk, so the connection is marked ``stream_broken``.
        """
        view = memoryview(data)
        sent = 0
        try:
            while sent < len(view):
                sent += self._sock.send(view[sent:])
        except OSError:
            if sent:
                self._stream_broken = True
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError as e:
            log_debug_operation(logger, f"Error closing {self.name}", e)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Connection {self.name} {state}>"
