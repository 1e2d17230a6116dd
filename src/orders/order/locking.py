"""Work lock — at most one fulfillment actor edits an order's line items.

The lock lives on the Order aggregate as a value object and is written only
through the WorkLockCoordinator. Coordinators are never blocked and never
take the lock. Every lock change also stamps ``updated_at``, since replacing
the value object alone does not mark a stored order as changed.

Locks do not expire unless a lease is configured through the
``WORK_LOCK_LEASE_MINUTES`` environment variable. With a lease, a lock older
than the lease is treated as absent.
"""

import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog
from protean.fields import DateTime, String

from orders.domain import orders
from orders.order.actors import Actor
from orders.order.errors import Forbidden, Locked
from orders.order.events import WorkLockAcquired, WorkLockReleased

logger = structlog.get_logger(__name__)


@orders.value_object(part_of="Order")
class WorkLock:
    holder = String(required=True, max_length=100)
    since = DateTime(required=True)


class WorkLockCoordinator:
    """Grants, releases and checks work locks on orders."""

    def __init__(self, lease: timedelta | None = None, clock: Callable[[], datetime] | None = None):
        self.lease = lease
        self._clock = clock or (lambda: datetime.now(UTC))

    def now(self) -> datetime:
        return self._clock()

    def is_expired(self, lock: WorkLock) -> bool:
        if self.lease is None:
            return False
        since = lock.since
        if since.tzinfo is None:
            since = since.replace(tzinfo=UTC)
        return self.now() - since >= self.lease

    def query(self, order) -> WorkLock | None:
        """Return the active lock on ``order``, or None."""
        lock = order.work_lock
        if lock is None or self.is_expired(lock):
            return None
        return lock

    def blocks(self, order, actor: Actor) -> bool:
        """True when another fulfillment actor holds the lock."""
        if actor.is_coordinator:
            return False
        lock = self.query(order)
        return lock is not None and lock.holder != actor.name

    def ensure_not_blocked(self, order, actor: Actor) -> None:
        if self.blocks(order, actor):
            holder = order.work_lock.holder
            raise Locked({"work_lock": [f"{holder} is working on this order"]}, holder=holder)

    def acquire(self, order, actor: Actor) -> WorkLock | None:
        """Take the lock for ``actor``.

        Coordinators succeed without taking it. Re-acquiring one's own lock
        is a no-op.
        """
        if actor.is_coordinator:
            return self.query(order)

        if order.is_paid:
            raise Forbidden({"work_lock": ["Paid orders cannot be edited"]})

        self.ensure_not_blocked(order, actor)

        current = self.query(order)
        if current is not None:
            return current

        now = self.now()
        lock = WorkLock(holder=actor.name, since=now)
        order.work_lock = lock
        order.updated_at = now
        order.raise_(WorkLockAcquired(order_id=order.id, holder=actor.name, acquired_at=now))
        logger.info("Work lock acquired", order_id=str(order.id), holder=actor.name)
        return lock

    def release(self, order, actor: Actor | None = None) -> bool:
        """Clear the lock if ``actor`` holds it, or unconditionally without an actor."""
        lock = order.work_lock
        if lock is None:
            return False
        if actor is not None and lock.holder != actor.name:
            return False

        now = self.now()
        order.work_lock = None
        order.updated_at = now
        order.raise_(
            WorkLockReleased(
                order_id=order.id,
                holder=lock.holder,
                released_by=actor.name if actor is not None else None,
                released_at=now,
            )
        )
        logger.info("Work lock released", order_id=str(order.id), holder=lock.holder)
        return True


_coordinator_instance = None


def get_lock_coordinator() -> WorkLockCoordinator:
    """Return the process-wide lock coordinator (singleton).

    Locks never expire by default. Set WORK_LOCK_LEASE_MINUTES to a positive
    number to enable a lease.
    """
    global _coordinator_instance
    if _coordinator_instance is None:
        minutes = float(os.environ.get("WORK_LOCK_LEASE_MINUTES", "0") or 0)
        lease = timedelta(minutes=minutes) if minutes > 0 else None
        _coordinator_instance = WorkLockCoordinator(lease=lease)
    return _coordinator_instance


def reset_lock_coordinator():
    """Reset the coordinator singleton (useful for testing)."""
    global _coordinator_instance
    _coordinator_instance = None
