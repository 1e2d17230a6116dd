"""Order transitions — command and handler.

A single command covers every workflow step. The transition kind selects the
rule; fulfillment passes and coordinator edits carry the working copy as a
JSON list of line items.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.actors import Actor
from orders.order.order import Order
from orders.order.queries import load_order


@orders.command(part_of="Order")
class ApplyTransition:
    """Apply one workflow transition to an order."""

    order_id = Identifier(required=True)
    transition = String(required=True, max_length=50)
    items = Text()  # JSON list of line item dicts
    note = Text()
    reason = String(max_length=255)
    actor_id = String(max_length=100)
    actor_name = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@orders.command_handler(part_of=Order)
class TransitionHandler:
    @handle(ApplyTransition)
    def apply_transition(self, command):
        actor = Actor.build(command.actor_name, command.actor_role, command.actor_id)
        working_items = json.loads(command.items) if command.items else None

        order = load_order(command.order_id)
        order.apply_transition(
            command.transition,
            actor,
            working_items=working_items,
            note=command.note,
            reason=command.reason,
        )
        current_domain.repository_for(Order).add(order)
        return order.status
