"""Work lock — commands and handler.

Fulfillment actors take the lock when they start editing an order's line
items. The coordinator may force-release a lock left behind by someone else.
"""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.actors import Actor
from orders.order.errors import Forbidden
from orders.order.locking import get_lock_coordinator
from orders.order.order import Order
from orders.order.queries import load_order


@orders.command(part_of="Order")
class AcquireWorkLock:
    order_id = Identifier(required=True)
    actor_id = String(max_length=100)
    actor_name = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@orders.command(part_of="Order")
class ReleaseWorkLock:
    """Release the lock held by the actor. ``force`` clears any holder."""

    order_id = Identifier(required=True)
    force = Boolean(default=False)
    actor_id = String(max_length=100)
    actor_name = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@orders.command_handler(part_of=Order)
class WorkLockHandler:
    @handle(AcquireWorkLock)
    def acquire_work_lock(self, command):
        actor = Actor.build(command.actor_name, command.actor_role, command.actor_id)
        order = load_order(command.order_id)
        lock = get_lock_coordinator().acquire(order, actor)
        current_domain.repository_for(Order).add(order)
        return lock.holder if lock is not None else None

    @handle(ReleaseWorkLock)
    def release_work_lock(self, command):
        actor = Actor.build(command.actor_name, command.actor_role, command.actor_id)
        if command.force and not actor.is_coordinator:
            raise Forbidden({"work_lock": ["Only coordinators can force-release a work lock"]})

        order = load_order(command.order_id)
        released = get_lock_coordinator().release(order, None if command.force else actor)
        if released:
            current_domain.repository_for(Order).add(order)
        return released
