"""Fake broadcaster — records published notifications for tests and development."""

from orders.broadcast.port import BroadcastPort


class FakeBroadcaster(BroadcastPort):
    """In-memory broadcaster that always succeeds by default."""

    def __init__(self):
        self.published: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Broadcast channel unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Broadcast channel unavailable"):
        """Configure the fake broadcaster behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def reset(self):
        self.published.clear()
        self.should_succeed = True

    def publish(self, notification: dict, exclude_user: str | None = None) -> dict:
        if not self.should_succeed:
            return {"delivered": False, "error": self.failure_reason}
        self.published.append({**notification, "exclude_user": exclude_user})
        return {"delivered": True}

    def visible_to(self, user: str) -> list[dict]:
        """Notifications ``user`` would receive."""
        return [item for item in self.published if item["exclude_user"] != user]
