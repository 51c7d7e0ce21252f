"""
Mocking infrastructure for relayharness tests.

Provides fake connections for exercising the peer set and fan-out without
sockets, and socket helpers for the loopback integration tests.
"""
