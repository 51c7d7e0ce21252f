"""Exceptions for relayharness with contextual information."""

from typing import Any, Dict, Optional


class HarnessError(Exception):
    """Base error for relayharness with contextual information."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        """
        Initialize a relayharness error.

        Args:
            message: Error message
            context: Optional context information (host, port, peer, operation, etc.)
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.context = context or {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Get string representation with context."""
        base_msg = super().__str__()
        if self.context:
            context_items = []
            for key, value in self.context.items():
                if isinstance(value, str) and len(value) > 50:
                    value = value[:47] + "..."
                context_items.append(f"{key}={value}")
            context_str = ", ".join(context_items)
            return f"{base_msg} (Context: {context_str})"
        return base_msg

    def __repr__(self) -> str:
        base_repr = super().__repr__()
        if self.context:
            return f"{base_repr} (context={self.context!r})"
        return base_repr

    def add_context(self, key: str, value: Any) -> None:
        """Add context information to the exception."""
        self.context[key] = value

    def get_context(self, key: str, default: Any = None) -> Any:
        """Get context information from the exception, or ``default``."""
        return self.context.get(key, default)


class BindError(HarnessError):
    """The listen address could not be bound. Fatal at startup."""

    pass


class DisconnectError(HarnessError):
    """A peer closed or errored while being read."""

    pass


class FanOutWriteError(HarnessError):
    """Delivering a relayed payload to one recipient failed."""

    pass


class NotConnectedError(HarnessError):
    """Operation attempted on an endpoint without a connected peer."""

    pass


class DeviceClosedError(HarnessError):
    """The mock device stream has ended; no further data will arrive."""

    pass


class UnexpectedDataError(HarnessError):
    """Bytes received from a peer did not match what a scenario expected."""

    pass


class TimeoutError(HarnessError):
    """Timeout error with operation-specific context."""

    pass


class RetriesExceededError(HarnessError):
    """A polled condition never became true."""

    pass


class ConfigurationError(HarnessError):
    """Invalid configuration value."""

    pass
