"""
Centralized logging utilities for relayharness.

Provides standardized logging functions for common scenarios so that relay,
mock device and CLI output share one format.
"""

import logging
from typing import Any, Optional, Tuple


def format_address(address: Optional[Tuple[Any, ...]]) -> str:
    """Render a socket address as ``host:port``."""
    if not address:
        return "?"
    host, port = address[0], address[1]
    return f"{host}:{port}"


def log_connection_event(
    logger: logging.Logger, event_type: str, host: str = "", port: int = 0
) -> None:
    """Log connection events with consistent format."""
    if host and port:
        logger.info(f"[CONNECTION] {event_type} - {host}:{port}")
    else:
        logger.info(f"[CONNECTION] {event_type}")


def log_relay_event(
    logger: logging.Logger,
    event_type: str,
    peer: str = "",
    peer_count: Optional[int] = None,
) -> None:
    """Log peer lifecycle events of the relay loop."""
    extra = {"relayharness_extra": {"peer": peer, "peer_count": peer_count}}
    detail = f" {peer}" if peer else ""
    count = f" ({peer_count} connected)" if peer_count is not None else ""
    logger.info(f"[RELAY] {event_type}{detail}{count}", extra=extra)


def log_device_event(
    logger: logging.Logger, event_type: str, details: str = ""
) -> None:
    """Log mock device events with consistent format."""
    detail_str = f": {details}" if details else ""
    logger.info(f"[DEVICE] {event_type}{detail_str}")


def log_write_failure(
    logger: logging.Logger, peer: str, error: Exception, dropped: bool
) -> None:
    """Log a failed delivery to one recipient."""
    action = "dropping peer" if dropped else "skipping"
    logger.warning(f"Write to {peer} failed ({error}); {action}")


def log_debug_operation(
    logger: logging.Logger, operation: str, details: Any = None
) -> None:
    """Log debug information for operations."""
    if details is not None:
        logger.debug(f"{operation}: {details}")
    else:
        logger.debug(f"{operation}")


def log_data_processing(
    logger: logging.Logger, operation: str, data_info: str = ""
) -> None:
    """Log data processing operations with consistent format."""
    info_str = f" - {data_info}" if data_info else ""
    logger.debug(f"[DATA] {operation}{info_str}")


__all__ = [
    "format_address",
    "log_connection_event",
    "log_relay_event",
    "log_device_event",
    "log_write_failure",
    "log_debug_operation",
    "log_data_processing",
]
