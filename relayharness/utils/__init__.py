"""
Utilities package for relayharness.

Contains common utility functions used across the relayharness codebase.
"""

from .logging_utils import (
    format_address,
    log_connection_event,
    log_data_processing,
    log_debug_operation,
    log_device_event,
    log_relay_event,
    log_write_failure,
)

__all__ = [
    "format_address",
    "log_connection_event",
    "log_relay_event",
    "log_device_event",
    "log_write_failure",
    "log_debug_operation",
    "log_data_processing",
]
