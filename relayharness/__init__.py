"""
relayharness package init.
Exports the relay, the mock device and the logging/CLI entry points.
"""

import argparse
import datetime
import json
import logging
import os
import sys
from typing import List, Optional

from .config import DeviceConfig, RelayConfig
from .exceptions import BindError, ConfigurationError, DeviceClosedError, HarnessError
from .mock import MockDevice
from .relay import RelayServer, run_relay


class JSONFormatter(logging.Formatter):
    """JSON formatter with structured relay fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        # Peer and peer_count from log_relay_event
        extra = getattr(record, "relayharness_extra", {})
        if extra:
            log_entry.update({k: v for k, v in extra.items() if v not in (None, "")})

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "WARNING") -> None:
    """
    Setup basic logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    use_json = os.environ.get("RELAYHARNESS_LOG_JSON", "false").lower() == "true"
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    if use_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    else:
        logging.basicConfig(
            level=getattr(logging, level.upper()),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def run_device(config: DeviceConfig) -> None:
    """Run a mock device in the foreground, logging every chunk received."""
    log = logging.getLogger(__name__)
    device = MockDevice(config=config)
    device.connect()
    try:
        device.wait_connected(timeout=None)
        while True:
            chunk = device.receive()
            log.info(f"Received {len(chunk)} bytes: {chunk.hex()}")
    except DeviceClosedError:
        log.info("Peer disconnected")
    except KeyboardInterrupt:
        log.info("KeyboardInterrupt. Exiting")
    finally:
        device.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relayharness", description="relayharness - byte relay and mock device"
    )
    parser.add_argument(
        "--log-level", default="INFO", help="Logging level (default INFO)"
    )
    # Also accepted after the command; SUPPRESS keeps a top-level value.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-level", default=argparse.SUPPRESS, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    relay = subparsers.add_parser(
        "relay", parents=[common], help="Start a relay on a port"
    )
    relay.add_argument("--host", default=None, help="Listen address (default 0.0.0.0)")
    relay.add_argument("--port", type=int, default=None, help="Port (default 8000)")
    relay.add_argument(
        "--recv-size", type=int, default=None, help="Bytes per read (default 4096)"
    )

    device = subparsers.add_parser(
        "device", parents=[common], help="Start a mock device on a port"
    )
    device.add_argument("--host", default=None, help="Listen address (default 0.0.0.0)")
    device.add_argument("--port", type=int, default=None, help="Port (default 8000)")
    device.add_argument(
        "--chunk-size", type=int, default=None, help="Bytes per read (default 4096)"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    log = logging.getLogger(__name__)

    try:
        if args.command == "relay":
            run_relay(
                RelayConfig(host=args.host, port=args.port, recv_size=args.recv_size)
            )
        else:
            run_device(
                DeviceConfig(host=args.host, port=args.port, chunk_size=args.chunk_size)
            )
    except (BindError, ConfigurationError) as e:
        log.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())


__all__ = [
    "JSONFormatter",
    "RelayServer",
    "RelayConfig",
    "DeviceConfig",
    "MockDevice",
    "HarnessError",
    "setup_logging",
    "main",
]
