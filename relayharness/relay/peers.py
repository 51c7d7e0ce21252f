"""The set of established connections served by one relay loop."""

from typing import Iterator, List

from .connection import Connection


class PeerSet:
    """Insertion-ordered collection of open connections.

    Doubles as the multiplexer's watch set and the fan-out target. Owned by
    a single relay loop, which mutates it only between readiness waits, so it
    needs no locking.
    """

    def __init__(self) -> None:
        self._peers: List[Connection] = []

    def add(self, conn: Connection) -> None:
        if conn.closed:
            raise ValueError(f"Cannot add closed connection {conn!r}")
        if conn not in self._peers:
            self._peers.append(conn)

    def remove(self, conn: Connection) -> bool:
        """Remove and close ``conn``. Returns whether it was a member."""
        try:
            self._peers.remove(conn)
        except ValueError:
            return False
        conn.close()
        return True

    def others(self, source: Connection) -> List[Connection]:
        """Snapshot of every member except ``source``, in set order."""
        return [conn for conn in self._peers if conn is not source]

    def close_all(self) -> int:
        count = len(self._peers)
        for conn in self._peers:
            conn.close()
        self._peers.clear()
        return count

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._peers))

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, conn: object) -> bool:
        return conn in self._peers

    def __repr__(self) -> str:
        return f"<PeerSet {len(self._peers)} peers>"
