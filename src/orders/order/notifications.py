"""Broadcast of order activity to the other connected actors.

Listens to the Order aggregate's own events and publishes a short
notification through the configured broadcast adapter. The originating actor
is excluded from delivery.
"""

import structlog
from protean.utils.mixins import handle

from orders.broadcast import get_broadcaster
from orders.domain import orders
from orders.order.events import OrderCreated, OrderTransitioned
from orders.order.order import Order

logger = structlog.get_logger(__name__)


def _publish(notification: dict, actor_name: str) -> None:
    result = get_broadcaster().publish(notification, exclude_user=actor_name)
    if not result.get("delivered"):
        logger.warning(
            "Broadcast delivery failed",
            order_id=notification["order_id"],
            error=result.get("error"),
        )


@orders.event_handler(part_of=Order)
class OrderBroadcastHandler:
    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        _publish(
            {
                "type": "order_created",
                "title": "New budget",
                "message": f"{event.actor_name} created a budget for {event.client_name}",
                "order_id": str(event.order_id),
                "actor_name": event.actor_name,
                "new_status": event.status,
                "client_name": event.client_name,
            },
            event.actor_name,
        )

    @handle(OrderTransitioned)
    def on_order_transitioned(self, event: OrderTransitioned) -> None:
        _publish(
            {
                "type": "order_updated",
                "title": "Order updated",
                "message": f"{event.actor_name} updated the order for {event.client_name}",
                "order_id": str(event.order_id),
                "actor_name": event.actor_name,
                "new_status": event.new_status,
                "client_name": event.client_name,
            },
            event.actor_name,
        )
