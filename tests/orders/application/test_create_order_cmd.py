import json

import pytest
from orders.order.creation import CreateOrder
from orders.order.errors import Forbidden, InvalidInput
from orders.order.order import Order
from protean import current_domain


def _create(**overrides):
    fields = {
        "client_name": "Almacén San Martín",
        "products": json.dumps([{"name": "A", "quantity": 10, "code": "A-1"}, {"name": "B", "quantity": 2}]),
        "actor_name": "Vale",
        "actor_role": "coordinator",
    }
    fields.update(overrides)
    return current_domain.process(CreateOrder(**fields), asynchronous=False)


class TestCreateOrderCommand:
    def test_create_persists_order(self):
        order_id = _create(client_address="Calle 9", initial_notes="Ring twice")

        order = current_domain.repository_for(Order).get(order_id)
        assert order.client_name == "Almacén San Martín"
        assert order.client_address == "Calle 9"
        assert order.status == "en_armado"
        assert sorted(p.name for p in order.products) == ["A", "B"]
        assert all(p.original_quantity == p.quantity for p in order.products)

    def test_fulfillment_cannot_create(self):
        with pytest.raises(Forbidden):
            _create(actor_name="Lucho", actor_role="fulfillment")

    def test_empty_product_list_is_rejected(self):
        with pytest.raises(InvalidInput):
            _create(products="[]")
