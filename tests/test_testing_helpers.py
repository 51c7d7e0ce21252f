import socket

import pytest

from relayharness.exceptions import RetriesExceededError
from relayharness.testing import wait_for_socket, with_retries
from tests.mocks.sockets import TEST_HOST, unused_port


def test_returns_first_truthy_value():
    attempts = iter([None, 0, "", "ready"])
    assert with_retries(lambda: next(attempts), retries=10, delay=0) == "ready"


def test_raises_when_retries_exceeded():
    calls = []
    with pytest.raises(RetriesExceededError) as excinfo:
        with_retries(lambda: calls.append(1), retries=3, delay=0)
    assert len(calls) == 3
    assert excinfo.value.get_context("retries") == 3


def test_os_errors_count_as_failed_attempts():
    attempts = iter([ConnectionRefusedError(), ConnectionRefusedError(), True])

    def flaky():
        outcome = next(attempts)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    assert with_retries(flaky, retries=5, delay=0) is True


def test_last_error_is_reported():
    def refuse():
        raise ConnectionRefusedError("nope")

    with pytest.raises(RetriesExceededError) as excinfo:
        with_retries(refuse, retries=2, delay=0)
    assert isinstance(excinfo.value.original_exception, ConnectionRefusedError)


def test_other_errors_propagate():
    def broken():
        raise ValueError("bug in the check")

    with pytest.raises(ValueError):
        with_retries(broken, retries=5, delay=0)


def test_wait_for_socket_on_listening_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
        server.bind((TEST_HOST, 0))
        server.listen(8)
        wait_for_socket(*server.getsockname()[:2], retries=10)


def test_wait_for_socket_gives_up():
    with pytest.raises(RetriesExceededError):
        wait_for_socket(TEST_HOST, unused_port(), retries=3, delay=0.01)
