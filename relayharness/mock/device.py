"""
Mock device endpoint.

Stands in for the physical device a bridge under test talks to: it accepts
exactly one connection, records every chunk the bridge sends, and writes
scripted bytes back. Reading happens on a background thread and is handed
to the test driver through a FIFO queue, so ``receive()`` blocks the caller
until the next chunk is available.
"""

import logging
import queue
import socket
import threading
from typing import Any, Iterable, List, Optional, Tuple, Union

from ..config import DeviceConfig
from ..exceptions import (
    DeviceClosedError,
    NotConnectedError,
    TimeoutError,
    UnexpectedDataError,
)
from ..relay.listener import open_listen_socket
from ..utils.logging_utils import format_address, log_data_processing, log_device_event

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, Iterable[int]]

# Marks the end of the stream in the handoff queue.
_EOF = object()

_ACCEPT_POLL = 0.05


class MockDevice:
    """Single-connection endpoint with a blocking, queue-backed receive."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        chunk_size: int = 4096,
        config: Optional[DeviceConfig] = None,
    ) -> None:
        if config is not None:
            host, port, chunk_size = config.host, config.port, config.chunk_size
        self.host = host
        self.port = port
        self.chunk_size = chunk_size

        self._messages: "queue.Queue[Any]" = queue.Queue()
        self._received: List[bytes] = []
        self._listener: Optional[socket.socket] = None
        self._socket: Optional[socket.socket] = None
        self._address: Tuple[str, int] = (host, port)
        self._peer_address: Optional[Tuple[str, int]] = None
        self._thread: Optional[threading.Thread] = None
        self._connected = threading.Event()
        self._closing = threading.Event()
        self._closed = False

    @property
    def address(self) -> Tuple[str, int]:
        """Bound ``(host, port)``; resolves an ephemeral port after ``connect()``."""
        return self._address

    @property
    def connected(self) -> bool:
        return self._connected.is_set() and not self._closed

    @property
    def received(self) -> List[bytes]:
        """Every chunk read so far, in arrival order."""
        return list(self._received)

    def connect(self) -> "MockDevice":
        """Start listening and accept the bridge's connection in the background.

        Returns immediately; use ``wait_connected`` to block until the peer
        has connected.

        Raises:
            BindError: If the port is unavailable.
        """
        if self._thread is not None:
            raise RuntimeError("Mock device already started")
        self._listener = open_listen_socket(self.host, self.port, backlog=1)
        self._address = self._listener.getsockname()[:2]
        log_device_event(logger, "Listening", format_address(self._address))

        self._thread = threading.Thread(
            target=self._run, name="MockDevice", daemon=True
        )
        self._thread.start()
        return self

    def wait_connected(self, timeout: Optional[float] = 5.0) -> None:
        """Block until the peer has connected."""
        if not self._connected.wait(timeout):
            raise TimeoutError(
                "No connection to mock device", {"port": self._address[1], "timeout": timeout}
            )

    def _run(self) -> None:
        try:
            if self._wait_for_socket():
                if self._closing.is_set():
                    # close() ran while the peer was being accepted.
                    self._socket.close()
                    return
                self._connected.set()
                log_device_event(
                    logger, "Peer connected", format_address(self._peer_address)
                )
                self._read_loop()
        finally:
            self._messages.put(_EOF)

    def _wait_for_socket(self) -> bool:
        listener = self._listener
        assert listener is not None
        listener.settimeout(_ACCEPT_POLL)
        try:
            while not self._closing.is_set():
                try:
                    sock, address = listener.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if not self._closing.is_set():
                        logger.warning(f"Mock device accept failed: {e}")
                    return False
                sock.settimeout(None)
                self._socket = sock
                self._peer_address = address
                return True
            return False
        finally:
            # Only one connection is served.
            listener.close()
            self._listener = None

    def _read_loop(self) -> None:
        sock = self._socket
        assert sock is not None
        while True:
            try:
                chunk = sock.recv(self.chunk_size)
            except OSError as e:
                # Expected when the socket is closed underneath us.
                if not self._closing.is_set():
                    log_device_event(logger, "Read ended", str(e))
                break
            if not chunk:
                if not self._closing.is_set():
                    log_device_event(logger, "Peer disconnected")
                break
            log_data_processing(logger, "Mock device received", chunk.hex())
            self._received.append(chunk)
            self._messages.put(chunk)

    def receive(self, timeout: Optional[float] = None) -> bytes:
        """Return the next chunk the peer sent, blocking until one arrives.

        Raises:
            TimeoutError: If nothing arrives within ``timeout`` seconds.
            DeviceClosedError: If the stream has ended.
        """
        try:
            item = self._messages.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(
                "Nothing received from peer", {"timeout": timeout}
            ) from None
        if item is _EOF:
            # Leave the marker for any later receive() as well.
            self._messages.put(_EOF)
            raise DeviceClosedError(
                "Mock device stream ended",
                {"peer": format_address(self._peer_address)},
            )
        return item

    def send(self, data: BytesLike) -> None:
        """Write exactly ``data`` to the peer.

        Accepts bytes or an iterable of ints, e.g. ``send([4, 5])``.
        """
        payload = bytes(data)
        sock = self._socket
        if sock is None or self._closed:
            raise NotConnectedError(
                "Mock device has no connected peer", {"port": self._address[1]}
            )
        try:
            sock.sendall(payload)
        except OSError as e:
            raise NotConnectedError(
                "Write to peer failed",
                {"peer": format_address(self._peer_address)},
                original_exception=e,
            ) from e
        log_data_processing(logger, "Mock device sent", payload.hex())

    def respond_to(
        self, expected: BytesLike, reply: BytesLike, timeout: Optional[float] = 5.0
    ) -> bytes:
        """Receive one chunk, check it equals ``expected`` and send ``reply``."""
        expected_bytes = bytes(expected)
        chunk = self.receive(timeout=timeout)
        if chunk != expected_bytes:
            raise UnexpectedDataError(
                "Unexpected bytes from peer",
                {"expected": expected_bytes.hex(), "received": chunk.hex()},
            )
        self.send(reply)
        return chunk

    def close(self, timeout: float = 5.0) -> None:
        """Close the connection and stop the reader thread.

        Any caller blocked in ``receive()`` is released with
        DeviceClosedError.
        """
        if self._closed:
            return
        self._closed = True
        self._closing.set()

        sock = self._socket
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                # Peer already gone.
                pass
            sock.close()

        if self._thread is not None:
            self._thread.join(timeout=timeout)
        else:
            self._messages.put(_EOF)
        log_device_event(logger, "Closed", format_address(self._address))

    def __enter__(self) -> "MockDevice":
        return self.connect()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "connected" if self.connected else "waiting"
        if self._closed:
            state = "closed"
        return f"<MockDevice {format_address(self._address)} {state}>"
