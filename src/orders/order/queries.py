"""Order queries — loading, listing and searching orders."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.query import Q

from orders.order.errors import InvalidInput, NotFound
from orders.order.order import Order
from orders.order.workflow import OrderStatus

VIEWS = ("active", "completed", "all")


def load_order(order_id: str) -> Order:
    """Fetch an order or raise NotFound."""
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFound({"order_id": [f"Order {order_id} not found"]}) from None


def list_orders(view: str = "all", search: str | None = None) -> list[Order]:
    """Orders newest first.

    ``active`` excludes paid orders and ``completed`` keeps only them.
    ``search`` matches the client name or the order id, case-insensitively.
    Filtering and ordering run in the repository, over every stored order.
    """
    if view not in VIEWS:
        raise InvalidInput({"view": [f"Unknown view: {view}. Expected one of {', '.join(VIEWS)}"]})

    query = current_domain.repository_for(Order)._dao.query

    paid = OrderStatus.PAGADO.value
    if view == "active":
        query = query.exclude(status=paid)
    elif view == "completed":
        query = query.filter(status=paid)

    term = (search or "").strip()
    if term:
        query = query.filter(Q(client_name__icontains=term) | Q(id__icontains=term))

    # limit(None) must come last, cloning a queryset restores the default limit
    return query.order_by("-created_at").limit(None).all().items
