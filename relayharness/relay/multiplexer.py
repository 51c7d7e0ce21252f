"""
Readiness multiplexing for the relay loop.

The watch set is rebuilt from the current peer set on every wait, so peers
added or removed by the previous iteration are always accounted for.
"""

import logging
import selectors
from typing import List, Optional, Union

from ..utils.logging_utils import log_debug_operation
from .connection import Connection
from .listener import Listener
from .peers import PeerSet

logger = logging.getLogger(__name__)

Readable = Union[Listener, Connection]


class Multiplexer:
    """Blocks until the listener or at least one peer is readable."""

    def __init__(self, selector_factory=selectors.DefaultSelector) -> None:
        self._selector_factory = selector_factory

    def wait(
        self,
        listener: Listener,
        peers: PeerSet,
        timeout: Optional[float] = None,
    ) -> List[Readable]:
        """Return exactly the ready subset of ``{listener} | peers``.

        The listener comes first when ready, followed by ready peers in peer
        set order. An empty list means ``timeout`` elapsed.
        """
        with self._selector_factory() as selector:
            selector.register(listener, selectors.EVENT_READ)
            for conn in peers:
                selector.register(conn, selectors.EVENT_READ)
            events = selector.select(timeout)

        ready = {id(key.fileobj) for key, _ in events}
        result: List[Readable] = []
        if id(listener) in ready:
            result.append(listener)
        result.extend(conn for conn in peers if id(conn) in ready)
        log_debug_operation(logger, "Readiness", f"{len(result)} ready")
        return result
