"""Domain events raised by the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from orders.domain import orders


@orders.event(part_of="Order")
class OrderCreated:
    """A coordinator created a new budget."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    client_name = String(required=True)
    status = String(required=True)
    actor_name = String(required=True)
    item_count = Integer(required=True)
    created_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderTransitioned:
    """A transition was applied. Re-entrant edits keep the same status."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    transition = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    actor_name = String(required=True)
    actor_role = String(required=True)
    client_name = String(required=True)
    note = Text()
    missing_count = Integer(default=0)
    returned_count = Integer(default=0)
    occurred_at = DateTime(required=True)


@orders.event(part_of="Order")
class WorkLockAcquired:
    __version__ = "v1"

    order_id = Identifier(required=True)
    holder = String(required=True)
    acquired_at = DateTime(required=True)


@orders.event(part_of="Order")
class WorkLockReleased:
    __version__ = "v1"

    order_id = Identifier(required=True)
    holder = String(required=True)
    released_by = String()
    released_at = DateTime(required=True)
