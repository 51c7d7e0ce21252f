"""Best-effort delivery of one payload to every other peer."""

import logging
from typing import List

from ..exceptions import FanOutWriteError
from ..utils.logging_utils import log_data_processing, log_write_failure
from .connection import Connection
from .peers import PeerSet

logger = logging.getLogger(__name__)

# Errors meaning the transport itself reports the recipient as gone.
CLOSED_ERRORS = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError)


class FanOutResult:
    """Outcome of one fan-out."""

    def __init__(self) -> None:
        self.delivered = 0
        self.failures: List[FanOutWriteError] = []
        self.dropped: List[Connection] = []

    @property
    def ok(self) -> bool:
        return not self.failures

    def __repr__(self) -> str:
        return (
            f"FanOutResult(delivered={self.delivered}, "
            f"failures={len(self.failures)}, dropped={len(self.dropped)})"
        )


def fan_out(payload: bytes, source: Connection, peers: PeerSet) -> FanOutResult:
    """Forward ``payload`` unmodified to every member of ``peers`` but ``source``.

    Recipients are written in peer set order. A failure on one recipient is
    recorded and delivery continues with the rest; nothing is raised. A
    recipient is dropped from ``peers`` only when the transport reports it
    closed or a write stopped partway through ``payload``.
    """
    result = FanOutResult()
    for recipient in peers.others(source):
        try:
            recipient.send(payload)
        except OSError as e:
            # A cut-off chunk cannot be repaired.
            dropped = isinstance(e, CLOSED_ERRORS) or recipient.stream_broken
            result.failures.append(
                FanOutWriteError(
                    f"Write to {recipient.name} failed",
                    {"peer": recipient.name, "bytes": len(payload)},
                    original_exception=e,
                )
            )
            if dropped and peers.remove(recipient):
                result.dropped.append(recipient)
            log_write_failure(logger, recipient.name, e, dropped)
        else:
            result.delivered += 1
    log_data_processing(
        logger,
        f"Relayed {len(payload)} bytes from {source.name}",
        f"{result.delivered} recipients",
    )
    return result
