"""Order deletion — command and handler.

Deletion sits outside the workflow: any order can be removed, in any status.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.order import Order
from orders.order.queries import load_order

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)
    actor_name = String(max_length=100)


@orders.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        order = load_order(command.order_id)
        current_domain.repository_for(Order)._dao.delete(order)
        logger.info("Order deleted", order_id=str(command.order_id), actor=command.actor_name)
