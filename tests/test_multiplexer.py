import socket
import time

import pytest

from relayharness.relay import Connection, Listener, Multiplexer, PeerSet
from tests.mocks.sockets import TEST_HOST


@pytest.fixture
def listener():
    lst = Listener(TEST_HOST, 0)
    lst.bind()
    yield lst
    lst.close()


@pytest.fixture
def pairs():
    """Connections backed by socketpairs; the test holds the far ends."""
    created = []

    def _make(name):
        near, far = socket.socketpair()
        created.append((near, far))
        return Connection(near, (name, len(created))), far

    yield _make
    for near, far in created:
        near.close()
        far.close()


def test_timeout_returns_empty(listener):
    start = time.monotonic()
    assert Multiplexer().wait(listener, PeerSet(), timeout=0.05) == []
    assert time.monotonic() - start < 1.0


def test_pending_connection_makes_listener_ready(listener):
    with socket.create_connection(listener.address, timeout=2.0):
        ready = Multiplexer().wait(listener, PeerSet(), timeout=2.0)
        assert ready == [listener]
        listener.accept().close()


def test_returns_only_ready_peers_in_peer_set_order(listener, pairs):
    peers = PeerSet()
    a, a_far = pairs("a")
    b, b_far = pairs("b")
    c, c_far = pairs("c")
    for conn in (a, b, c):
        peers.add(conn)

    c_far.sendall(b"1")
    a_far.sendall(b"2")
    time.sleep(0.05)

    assert Multiplexer().wait(listener, peers, timeout=2.0) == [a, c]


def test_listener_comes_before_peers(listener, pairs):
    peers = PeerSet()
    a, a_far = pairs("a")
    peers.add(a)
    a_far.sendall(b"data")
    with socket.create_connection(listener.address, timeout=2.0):
        time.sleep(0.05)
        ready = Multiplexer().wait(listener, peers, timeout=2.0)
        assert ready == [listener, a]
        listener.accept().close()


def test_watch_set_follows_peer_set_changes(listener, pairs):
    mux = Multiplexer()
    peers = PeerSet()
    a, a_far = pairs("a")
    peers.add(a)
    a_far.sendall(b"x")
    assert mux.wait(listener, peers, timeout=2.0) == [a]

    peers.remove(a)
    assert mux.wait(listener, peers, timeout=0.05) == []

    b, b_far = pairs("b")
    peers.add(b)
    b_far.close()
    # A closed far end reads as ready (zero-length read pending).
    assert mux.wait(listener, peers, timeout=2.0) == [b]
