"""
Mock device package.

Provides the single-connection mock device and scripted scenarios played
against it.
"""

from .device import MockDevice
from .scenarios import Expect, Pause, Reply, Scenario, echo_scenario, request_response

__all__ = [
    "MockDevice",
    "Expect",
    "Pause",
    "Reply",
    "Scenario",
    "echo_scenario",
    "request_response",
]
