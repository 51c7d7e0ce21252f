"""
Polling helpers for black-box tests.

Processes under test start asynchronously; these helpers wait for them to
appear without fixed sleeps.
"""

import logging
import socket
import time
from typing import Callable, Optional, Tuple, Type, TypeVar, Union

from .exceptions import RetriesExceededError

logger = logging.getLogger(__name__)

T = TypeVar("T")

IgnoredErrors = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


def with_retries(
    fn: Callable[[], T],
    retries: int = 1000,
    delay: float = 0.01,
    ignore: Optional[IgnoredErrors] = OSError,
) -> T:
    """Call ``fn`` until it returns a truthy value, sleeping between attempts.

    Exceptions matching ``ignore`` count as a failed attempt.

    Raises:
        RetriesExceededError: If no attempt succeeded.
    """
    ignored = ignore or ()
    last_error: Optional[BaseException] = None
    for _ in range(retries):
        try:
            result = fn()
        except ignored as e:
            last_error = e
        else:
            if result:
                return result
        time.sleep(delay)

    raise RetriesExceededError(
        "Retries exceeded",
        {"retries": retries, "delay": delay, "last_error": last_error},
        original_exception=last_error if isinstance(last_error, Exception) else None,
    )


def wait_for_socket(
    host: str, port: int, retries: int = 1000, delay: float = 0.01
) -> None:
    """Block until a TCP connection to ``host:port`` succeeds."""

    def _probe() -> bool:
        with socket.create_connection((host, port), timeout=1.0):
            return True

    with_retries(_probe, retries=retries, delay=delay)
    logger.debug(f"{host}:{port} is accepting connections")
