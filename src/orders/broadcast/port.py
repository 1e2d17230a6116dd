"""Broadcast port — abstract interface for pushing notifications to connected actors.

The domain publishes through the port; adapters (websocket hubs, push
services) are swapped via configuration.
"""

from abc import ABC, abstractmethod


class BroadcastPort(ABC):
    """Abstract interface for broadcast adapters."""

    @abstractmethod
    def publish(self, notification: dict, exclude_user: str | None = None) -> dict:
        """Deliver ``notification`` to every connected actor except ``exclude_user``.

        ``notification`` carries: type, title, message, order_id, actor_name,
        new_status, client_name.

        Returns:
            dict with keys: delivered (bool), error (str, on failure)
        """
        ...
