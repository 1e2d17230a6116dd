"""Shared BDD fixtures and step definitions for the orders domain."""

import pytest
from orders.order.actors import Actor, Role
from orders.order.errors import Forbidden, Locked
from orders.order.locking import get_lock_coordinator
from orders.order.order import Order
from orders.order.workflow import TransitionKind
from pytest_bdd import given, parsers, then, when

COORDINATOR = Actor(name="Vale", role=Role.COORDINATOR)


def actor_named(name: str) -> Actor:
    if name == COORDINATOR.name:
        return COORDINATOR
    return Actor(name=name, role=Role.FULFILLMENT)


def working(order, checked=True, **quantities):
    items = order.working_copy()
    for item in items:
        item.quantity = quantities.get(item.name, item.quantity)
        item.checked = checked
    return items


def _budget(quantity: int, name: str = "A", client: str = "Almacén San Martín") -> Order:
    return Order.create(
        client_name=client,
        products_data=[{"name": name, "quantity": quantity}],
        actor=COORDINATOR,
    )


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def actor_for():
    return actor_named


@pytest.fixture()
def checked_copy():
    return working


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a budget for "{client}" with {quantity:d} units of "{name}"'),
    target_fixture="order",
)
def budget(client, quantity, name):
    order = _budget(quantity, name, client)
    order._events.clear()
    return order


@given(
    parsers.cfparse('a picked order with {quantity:d} units of "{name}" picked by "{picker}"'),
    target_fixture="order",
)
def picked_order(quantity, name, picker):
    order = _budget(quantity, name)
    order.apply_transition(TransitionKind.PICK, actor_named(picker), working_items=working(order))
    order._events.clear()
    return order


@given(
    parsers.cfparse('a verified order with {missing:d} units of "{name}" missing'),
    target_fixture="order",
)
def verified_order(missing, name):
    order = _budget(10, name)
    order.apply_transition(TransitionKind.PICK, actor_named("Lucho"), working_items=working(order, **{name: 10 - missing}))
    order.apply_transition(TransitionKind.CONTROL_PICK, actor_named("Franco"), working_items=working(order))
    order._events.clear()
    return order


@given(
    parsers.cfparse('an order in transit with {quantity:d} units of "{name}"'),
    target_fixture="order",
)
def order_in_transit(quantity, name):
    lucho, franco = actor_named("Lucho"), actor_named("Franco")
    order = _budget(quantity, name)
    order.apply_transition(TransitionKind.PICK, lucho, working_items=working(order))
    order.apply_transition(TransitionKind.CONTROL_PICK, franco, working_items=working(order))
    order.apply_transition(TransitionKind.INVOICE, COORDINATOR)
    order.apply_transition(TransitionKind.CONTROL_INVOICE, franco, working_items=working(order))
    order.apply_transition(TransitionKind.DISPATCH, lucho)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{actor}" acquires the work lock'))
def acquire_lock(order, actor):
    get_lock_coordinator().acquire(order, actor_named(actor))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the missing ledger holds {quantity:d} units of "{name}"'))
def missing_holds(order, quantity, name):
    assert [(m.product_name, m.quantity) for m in order.missing_products] == [(name, float(quantity))]


@then("the missing ledger is empty")
def missing_empty(order):
    assert order.missing_products == []


@then(parsers.cfparse('the order was picked by "{picker}"'))
def picked_by(order, picker):
    assert order.armed_by == picker


@then("the work lock is free")
def lock_free(order):
    assert get_lock_coordinator().query(order) is None


@then(parsers.cfparse('"{holder}" still holds the work lock'))
def lock_held_by(order, holder):
    assert get_lock_coordinator().query(order).holder == holder


@then(parsers.cfparse("the history has {count:d} entries"))
def history_count(order, count):
    assert len(order.history) == count


@then("the transition is refused as forbidden")
def refused_forbidden(error):
    assert isinstance(error["exc"], Forbidden)


@then(parsers.cfparse('the attempt fails because "{holder}" holds the lock'))
def refused_locked(error, holder):
    assert isinstance(error["exc"], Locked)
    assert error["exc"].holder == holder
