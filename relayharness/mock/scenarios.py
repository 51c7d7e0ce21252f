"""
Scripted request/response scenarios for the mock device.

A scenario is an ordered list of steps played against a connected
``MockDevice``: wait for exact bytes from the bridge, write a canned reply,
or pause. Scenarios are plain data so tests can build them inline.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from ..exceptions import UnexpectedDataError
from ..utils.logging_utils import log_device_event
from .device import BytesLike, MockDevice

logger = logging.getLogger(__name__)


@dataclass
class Expect:
    """Wait for the next chunk and require it to equal ``data``."""

    data: bytes

    def __post_init__(self) -> None:
        self.data = bytes(self.data)


@dataclass
class Reply:
    """Write ``data`` to the peer."""

    data: bytes

    def __post_init__(self) -> None:
        self.data = bytes(self.data)


@dataclass
class Pause:
    """Sleep for ``seconds`` before the next step."""

    seconds: float


Step = Union[Expect, Reply, Pause]


@dataclass
class Scenario:
    name: str
    steps: List[Step] = field(default_factory=list)

    def expect(self, data: BytesLike) -> "Scenario":
        self.steps.append(Expect(bytes(data)))
        return self

    def reply(self, data: BytesLike) -> "Scenario":
        self.steps.append(Reply(bytes(data)))
        return self

    def pause(self, seconds: float) -> "Scenario":
        self.steps.append(Pause(seconds))
        return self

    def play(self, device: MockDevice, timeout: Optional[float] = 5.0) -> List[bytes]:
        """Run every step in order against ``device``.

        Returns the chunks consumed by ``Expect`` steps.

        Raises:
            UnexpectedDataError: If an ``Expect`` step sees different bytes.
            TimeoutError: If an ``Expect`` step waits longer than ``timeout``.
        """
        log_device_event(logger, f"Playing scenario {self.name}", f"{len(self.steps)} steps")
        consumed: List[bytes] = []
        for index, step in enumerate(self.steps):
            if isinstance(step, Expect):
                chunk = device.receive(timeout=timeout)
                if chunk != step.data:
                    raise UnexpectedDataError(
                        f"Scenario {self.name} step {index} mismatch",
                        {"expected": step.data.hex(), "received": chunk.hex()},
                    )
                consumed.append(chunk)
            elif isinstance(step, Reply):
                device.send(step.data)
            elif isinstance(step, Pause):
                time.sleep(step.seconds)
            else:
                raise TypeError(f"Unknown scenario step {step!r}")
        return consumed


def echo_scenario(request: BytesLike) -> Scenario:
    """Expect ``request`` and send it straight back."""
    data = bytes(request)
    return Scenario("echo").expect(data).reply(data)


def request_response(
    pairs: Iterable[Tuple[BytesLike, BytesLike]], name: str = "request-response"
) -> Scenario:
    """Build a scenario answering each expected request with its reply."""
    scenario = Scenario(name)
    for request, response in pairs:
        scenario.expect(request).reply(response)
    return scenario


__all__ = [
    "Expect",
    "Reply",
    "Pause",
    "Step",
    "Scenario",
    "echo_scenario",
    "request_response",
]
