"""
Runtime configuration for the relay and the mock device.

There is no configuration file: defaults come from ``RELAYHARNESS_*``
environment variables and can be overridden per instance or from the CLI.
"""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_RECV_SIZE = 4096
DEFAULT_BACKLOG = 128
DEFAULT_WRITE_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.5


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid integer for {name}", {"value": raw}, original_exception=e
        ) from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid number for {name}", {"value": raw}, original_exception=e
        ) from e


def _check_port(port: int) -> int:
    if not 0 <= port <= 65535:
        raise ConfigurationError("Port out of range", {"port": port})
    return port


def _check_positive(name: str, value: int) -> int:
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive", {name: value})
    return value


class RelayConfig:
    """Configuration for relay server behavior."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        recv_size: Optional[int] = None,
        backlog: int = DEFAULT_BACKLOG,
        write_timeout: Optional[float] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize relay configuration.

        Args:
            host: Listen address (``RELAYHARNESS_HOST``, default 0.0.0.0)
            port: Listen port, 0 for an ephemeral port (``RELAYHARNESS_PORT``, default 8000)
            recv_size: Bytes per bounded read (``RELAYHARNESS_RECV_SIZE``, default 4096)
            backlog: Listen backlog
            write_timeout: Per-recipient send timeout in seconds, None blocks
                (``RELAYHARNESS_WRITE_TIMEOUT``, default 5.0)
            poll_interval: Longest readiness wait before checking for shutdown
        """
        self.host = (
            host if host is not None else os.environ.get("RELAYHARNESS_HOST", DEFAULT_HOST)
        )
        self.port = _check_port(
            port if port is not None else _env_int("RELAYHARNESS_PORT", DEFAULT_PORT)
        )
        self.recv_size = _check_positive(
            "recv_size",
            recv_size
            if recv_size is not None
            else _env_int("RELAYHARNESS_RECV_SIZE", DEFAULT_RECV_SIZE),
        )
        self.backlog = backlog
        self.write_timeout = (
            write_timeout
            if write_timeout is not None
            else _env_float("RELAYHARNESS_WRITE_TIMEOUT", DEFAULT_WRITE_TIMEOUT)
        )
        if self.write_timeout is not None and self.write_timeout <= 0:
            self.write_timeout = None
        self.poll_interval = poll_interval

    def __repr__(self) -> str:
        return (
            f"RelayConfig(host={self.host!r}, port={self.port}, "
            f"recv_size={self.recv_size}, write_timeout={self.write_timeout})"
        )


class DeviceConfig:
    """Configuration for the mock device endpoint."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        chunk_size: Optional[int] = None,
    ):
        self.host = (
            host if host is not None else os.environ.get("RELAYHARNESS_HOST", DEFAULT_HOST)
        )
        self.port = _check_port(
            port if port is not None else _env_int("RELAYHARNESS_PORT", DEFAULT_PORT)
        )
        self.chunk_size = _check_positive(
            "chunk_size",
            chunk_size
            if chunk_size is not None
            else _env_int("RELAYHARNESS_RECV_SIZE", DEFAULT_RECV_SIZE),
        )

    def __repr__(self) -> str:
        return (
            f"DeviceConfig(host={self.host!r}, port={self.port}, "
            f"chunk_size={self.chunk_size})"
        )
