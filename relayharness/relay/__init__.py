"""
Multiplexed connection relay.

Exposes the listener, peer set, readiness multiplexer, fan-out and the relay
loop built from them.
"""

from .connection import Connection
from .fanout import FanOutResult, fan_out
from .listener import Listener
from .multiplexer import Multiplexer
from .peers import PeerSet
from .server import IterationOutcome, RelayServer, run_relay

__all__ = [
    "Connection",
    "FanOutResult",
    "fan_out",
    "Listener",
    "Multiplexer",
    "PeerSet",
    "IterationOutcome",
    "RelayServer",
    "run_relay",
]
