import socket

import pytest

from relayharness.exceptions import BindError, NotConnectedError
from relayharness.relay import Connection, Listener
from tests.mocks.sockets import TEST_HOST


@pytest.fixture
def listener():
    lst = Listener(TEST_HOST, 0)
    lst.bind()
    yield lst
    lst.close()


def test_bind_resolves_ephemeral_port(listener):
    host, port = listener.address
    assert host == TEST_HOST
    assert port != 0
    assert listener.bound


def test_bind_unavailable_port_raises_bind_error(listener):
    _, port = listener.address
    other = Listener(TEST_HOST, port)
    with pytest.raises(BindError) as excinfo:
        other.bind()
    assert excinfo.value.get_context("port") == port
    assert isinstance(excinfo.value.original_exception, OSError)
    assert not other.bound


def test_accept_returns_connection(listener):
    with socket.create_connection(listener.address, timeout=2.0) as client:
        conn = listener.accept()
        try:
            assert isinstance(conn, Connection)
            assert not conn.closed
            client.sendall(b"hello")
            assert conn.recv(4096) == b"hello"
            conn.send(b"back")
            assert client.recv(4096) == b"back"
        finally:
            conn.close()
    assert conn.closed


def test_unbound_listener_refuses_use():
    lst = Listener(TEST_HOST, 0)
    with pytest.raises(NotConnectedError):
        lst.fileno()
    with pytest.raises(NotConnectedError):
        lst.accept()


def test_close_is_idempotent(listener):
    listener.close()
    listener.close()
    assert not listener.bound


def test_connection_close_is_idempotent():
    a, b = socket.socketpair()
    try:
        conn = Connection(a, ("local", 1))
        conn.close()
        conn.close()
        assert conn.closed
        assert "closed" in repr(conn)
    finally:
        b.close()


class _StallingSocket:
    """Accepts ``limit`` bytes in total, then times out."""

    def __init__(self, limit):
        self.limit = limit
        self.written = b""

    def settimeout(self, timeout):
        pass

    def send(self, data):
        room = self.limit - len(self.written)
        if room <= 0:
            raise TimeoutError("timed out")
        chunk = bytes(data[:room])
        self.written += chunk
        return len(chunk)


def test_connection_send_marks_partial_write():
    sock = _StallingSocket(limit=3)
    conn = Connection(sock, ("local", 1), write_timeout=0.1)
    with pytest.raises(TimeoutError):
        conn.send(b"abcdef")
    assert sock.written == b"abc"
    assert conn.stream_broken


def test_connection_send_timeout_without_progress_is_not_partial():
    conn = Connection(_StallingSocket(limit=0), ("local", 1), write_timeout=0.1)
    with pytest.raises(TimeoutError):
        conn.send(b"abc")
    assert not conn.stream_broken


def test_connection_send_writes_everything():
    a, b = socket.socketpair()
    try:
        conn = Connection(a, ("local", 1), write_timeout=2.0)
        conn.send(b"hello")
        b.settimeout(2.0)
        assert b.recv(5) == b"hello"
        assert not conn.stream_broken
    finally:
        a.close()
        b.close()
