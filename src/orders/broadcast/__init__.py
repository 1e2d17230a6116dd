"""Broadcast adapter abstraction — pluggable delivery of live notifications."""

import os

_broadcaster_instance = None


def get_broadcaster():
    """Return the configured broadcast adapter (singleton).

    Uses FakeBroadcaster by default. Configure via the BROADCAST_ADAPTER
    environment variable.
    """
    global _broadcaster_instance
    if _broadcaster_instance is None:
        adapter = os.environ.get("BROADCAST_ADAPTER", "fake")
        if adapter == "fake":
            from orders.broadcast.fake_adapter import FakeBroadcaster

            _broadcaster_instance = FakeBroadcaster()
        else:
            raise ValueError(f"Unknown broadcast adapter: {adapter}")
    return _broadcaster_instance


def reset_broadcaster():
    """Reset the broadcaster singleton (useful for testing)."""
    global _broadcaster_instance
    _broadcaster_instance = None
