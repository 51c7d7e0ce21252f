"""
RelayServer: the multiplexed connection relay.

One control loop, one readiness wait per iteration. Each iteration either
accepts a new connection, or reads one ready peer and forwards the bytes to
every other peer, or drops a peer that disconnected. No thread is created
per connection.
"""

import copy
import enum
import logging
import threading
from typing import Any, Optional, Tuple

from ..config import RelayConfig
from ..exceptions import DisconnectError, NotConnectedError
from ..utils.logging_utils import (
    log_connection_event,
    log_data_processing,
    log_relay_event,
)
from .connection import Connection
from .fanout import FanOutResult, fan_out
from .listener import Listener
from .multiplexer import Multiplexer
from .peers import PeerSet

logger = logging.getLogger(__name__)


class IterationOutcome(enum.Enum):
    """What one relay loop iteration did."""

    IDLE = "idle"
    ACCEPTED = "accepted"
    BROADCAST = "broadcast"
    DISCONNECTED = "disconnected"


class RelayServer:
    """Forwards bytes received on any connection to every other connection."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        config: Optional[RelayConfig] = None,
    ) -> None:
        """
        Initialize the relay. Nothing is bound until ``bind()``.

        Args:
            host: Listen address, overrides ``config.host``
            port: Listen port, overrides ``config.port``
            config: Relay configuration (environment defaults if None)
        """
        if config is None:
            self.config = RelayConfig(host=host, port=port)
        else:
            self.config = copy.copy(config)
            if host is not None:
                self.config.host = host
            if port is not None:
                self.config.port = port

        self.listener = Listener(
            self.config.host,
            self.config.port,
            backlog=self.config.backlog,
            write_timeout=self.config.write_timeout,
        )
        # Owned by this loop for its lifetime; never shared between servers.
        self.peers = PeerSet()
        self.multiplexer = Multiplexer()

        self.accepted = 0
        self.disconnected = 0
        self.bytes_relayed = 0
        self.write_failures = 0
        self.last_fan_out: Optional[FanOutResult] = None

        self._shutdown_request = threading.Event()
        self._is_serving = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.listener.address

    @property
    def peer_count(self) -> int:
        return len(self.peers)

    def bind(self) -> "RelayServer":
        """Bind the listen address.

        Raises:
            BindError: If the port is unavailable.
        """
        self.listener.bind()
        return self

    def step(self, timeout: Optional[float] = None) -> IterationOutcome:
        """Run exactly one iteration of the relay loop."""
        if not self.listener.bound:
            raise NotConnectedError(
                "Relay is not bound", {"host": self.config.host, "port": self.config.port}
            )

        ready = self.multiplexer.wait(self.listener, self.peers, timeout)
        if not ready:
            return IterationOutcome.IDLE

        # Accept before reading anything: a connection pending behind a slow
        # peer is never starved and joins before the next broadcast.
        if ready[0] is self.listener:
            return self._accept()

        source = ready[0]
        assert isinstance(source, Connection)
        try:
            payload = source.recv(self.config.recv_size)
        except OSError as e:
            error = DisconnectError(
                f"Read from {source.name} failed",
                {"peer": source.name},
                original_exception=e,
            )
            logger.warning(str(error))
            return self._disconnect(source)

        if not payload:
            return self._disconnect(source)

        self._broadcast(source, payload)
        return IterationOutcome.BROADCAST

    def _accept(self) -> IterationOutcome:
        try:
            conn = self.listener.accept()
        except OSError as e:
            logger.warning(f"Accept failed: {e}")
            return IterationOutcome.IDLE
        self.peers.add(conn)
        self.accepted += 1
        log_relay_event(logger, "Peer connected", conn.name, len(self.peers))
        return IterationOutcome.ACCEPTED

    def _disconnect(self, conn: Connection) -> IterationOutcome:
        if self.peers.remove(conn):
            self.disconnected += 1
            log_relay_event(logger, "Peer disconnected", conn.name, len(self.peers))
        return IterationOutcome.DISCONNECTED

    def _broadcast(self, source: Connection, payload: bytes) -> None:
        log_data_processing(logger, f"Read {len(payload)} bytes", source.name)
        result = fan_out(payload, source, self.peers)
        self.bytes_relayed += len(payload) * result.delivered
        self.write_failures += len(result.failures)
        self.disconnected += len(result.dropped)
        for conn in result.dropped:
            log_relay_event(logger, "Peer dropped", conn.name, len(self.peers))
        self.last_fan_out = result

    def serve_forever(self, poll_interval: Optional[float] = None) -> None:
        """Run the relay loop until ``shutdown()`` is called.

        ``poll_interval`` bounds each readiness wait so a shutdown request is
        noticed; it defaults to ``config.poll_interval``.
        """
        if poll_interval is None:
            poll_interval = self.config.poll_interval
        self.bind()
        self._shutdown_request.clear()
        self._is_serving.set()
        log_connection_event(logger, "Relay serving", *self.address)
        try:
            while not self._shutdown_request.is_set():
                self.step(poll_interval)
        finally:
            self._is_serving.clear()
            log_connection_event(logger, "Relay stopped", *self.address)

    def shutdown(self) -> None:
        """Ask ``serve_forever`` to return after the current iteration."""
        self._shutdown_request.set()

    def server_close(self) -> None:
        """Close the listener and every remaining peer."""
        closed = self.peers.close_all()
        if closed:
            log_relay_event(logger, f"Closed {closed} remaining peers", peer_count=0)
        self.listener.close()

    def start_threaded(self) -> None:
        """Bind and run the relay loop in a background daemon thread.

        The loop itself stays single-threaded; the thread only keeps the
        caller (usually a test) free to drive clients.
        """
        if self._thread is not None:
            raise RuntimeError("Relay already started")
        self.bind()
        self._thread = threading.Thread(
            target=self.serve_forever, name="RelayServer", daemon=True
        )
        self._thread.start()
        self._is_serving.wait(timeout=5.0)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop a relay started with ``start_threaded`` and release sockets."""
        self.shutdown()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self.server_close()

    def __enter__(self) -> "RelayServer":
        return self.bind()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._thread is not None:
            self.stop()
        else:
            self.server_close()

    def __repr__(self) -> str:
        host, port = self.address
        return f"<RelayServer {host}:{port} peers={len(self.peers)}>"


def run_relay(config: RelayConfig) -> None:
    """Serve a relay in the foreground until interrupted."""
    server = RelayServer(config=config)
    server.bind()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt. Exiting")
    finally:
        server.server_close()
