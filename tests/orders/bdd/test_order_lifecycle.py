"""BDD tests for the order lifecycle."""

from orders.order.errors import Forbidden
from orders.order.workflow import TransitionKind
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/order_lifecycle.feature")


@when(parsers.cfparse('"{actor}" picks the order with {quantity:d} units of "{name}"'))
def pick(order, actor, quantity, name, actor_for, checked_copy):
    order.apply_transition(
        TransitionKind.PICK, actor_for(actor), working_items=checked_copy(order, **{name: quantity})
    )


@when(parsers.cfparse('"{actor}" attempts to verify the picking'))
def attempt_verify(order, actor, error, actor_for, checked_copy):
    try:
        order.apply_transition(TransitionKind.CONTROL_PICK, actor_for(actor), working_items=checked_copy(order))
    except Forbidden as exc:
        error["exc"] = exc


@when(parsers.cfparse('the coordinator invoices {quantity:d} units of "{name}"'))
def edit_invoice(order, quantity, name, actor_for):
    items = [
        {"id": str(p.id), "name": p.name, "quantity": quantity if p.name == name else p.quantity}
        for p in order.products
    ]
    order.apply_transition(TransitionKind.EDIT_INVOICE, actor_for("Vale"), working_items=items)


@when(parsers.cfparse('"{actor}" delivers {quantity:d} units of "{name}"'))
def deliver(order, actor, quantity, name, actor_for, checked_copy):
    order.apply_transition(
        TransitionKind.DELIVER, actor_for(actor), working_items=checked_copy(order, **{name: quantity})
    )


@when(parsers.cfparse('"{actor}" reports a transfer payment'))
def report_transfer(order, actor, actor_for):
    order.apply_transition(TransitionKind.REPORT_TRANSFER, actor_for(actor))


@when("the coordinator verifies the transfer")
def verify_transfer(order, actor_for):
    order.apply_transition(TransitionKind.VERIFY_TRANSFER, actor_for("Vale"))


@then(parsers.cfparse('the history ends with "{line}" before the invoice update'))
def history_ends_with(order, line):
    actions = [entry.action for entry in order.timeline()]
    assert actions[-2:] == [line, "Invoice updated - products and missing recalculated"]


@then(parsers.cfparse('the baseline of "{name}" is {quantity:d} units'))
def baseline_is(order, name, quantity):
    product = next(p for p in order.products if p.name == name)
    assert product.original_quantity == float(quantity)


@then(parsers.cfparse('{quantity:d} units of "{name}" are returned with reason "{reason}"'))
def returned_with_reason(order, quantity, name, reason):
    assert [(r.product_name, r.quantity, r.reason) for r in order.returned_products] == [
        (name, float(quantity), reason)
    ]


@then("the order is awaiting transfer verification")
def awaiting_verification(order):
    assert order.awaiting_transfer_verification is True
    assert order.is_paid is False


@then("the order is paid")
def is_paid(order):
    assert order.is_paid is True
