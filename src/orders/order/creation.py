"""Order creation — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Float, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.actors import Actor
from orders.order.order import Order

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class CreateOrder:
    """Create a budget from a validated product list."""

    client_name = String(required=True, max_length=255)
    client_address = String(max_length=500)
    products = Text(required=True)  # JSON list of product dicts
    initial_notes = Text()
    total_amount = Float(min_value=0.0)
    actor_id = String(max_length=100)
    actor_name = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@orders.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        actor = Actor.build(command.actor_name, command.actor_role, command.actor_id)
        products_data = json.loads(command.products) if isinstance(command.products, str) else command.products
        order = Order.create(
            client_name=command.client_name,
            products_data=products_data,
            actor=actor,
            client_address=command.client_address,
            initial_notes=command.initial_notes,
            total_amount=command.total_amount,
        )
        current_domain.repository_for(Order).add(order)
        logger.info("Order created", order_id=str(order.id), client_name=order.client_name, actor=actor.name)
        return str(order.id)
