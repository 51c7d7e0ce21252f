import logging
import os
import socket
from typing import Callable, List

import pytest

from relayharness.config import RelayConfig
from relayharness.mock import MockDevice
from relayharness.relay import RelayServer
from relayharness.testing import with_retries
from tests.mocks.sockets import TEST_HOST

SOCKET_TIMEOUT = float(os.environ.get("RELAYHARNESS_TEST_SOCKET_TIMEOUT", "2.0"))

logger = logging.getLogger(__name__)


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(host=TEST_HOST, port=0, write_timeout=2.0, poll_interval=0.05)


@pytest.fixture
def relay(relay_config):
    """A bound relay driven one ``step()`` at a time by the test."""
    server = RelayServer(config=relay_config).bind()
    yield server
    server.server_close()


@pytest.fixture
def running_relay(relay_config):
    """A relay serving in a background thread."""
    server = RelayServer(config=relay_config)
    server.start_threaded()
    logger.info(f"Relay fixture serving on {server.address}")
    yield server
    server.stop()


@pytest.fixture
def open_client() -> Callable[..., socket.socket]:
    """Factory for client sockets that are closed at teardown."""
    clients: List[socket.socket] = []

    def _open(address) -> socket.socket:
        sock = socket.create_connection(address, timeout=SOCKET_TIMEOUT)
        clients.append(sock)
        return sock

    yield _open
    for sock in clients:
        sock.close()


@pytest.fixture
def connect_peers(running_relay, open_client):
    """Connect ``n`` peers to the running relay and wait until all are registered."""

    def _connect(n: int) -> List[socket.socket]:
        expected = running_relay.peer_count + n
        peers = [open_client(running_relay.address) for _ in range(n)]
        with_retries(lambda: running_relay.peer_count == expected, retries=500)
        return peers

    return _connect


@pytest.fixture
def mock_device():
    device = MockDevice(host=TEST_HOST, port=0).connect()
    yield device
    device.close()


@pytest.fixture
def preserve_root_logger():
    root = logging.getLogger()
    level = root.level
    handlers = root.handlers[:]
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
