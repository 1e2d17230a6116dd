import pytest
from orders.order.actors import Actor, Role
from orders.order.errors import Forbidden, InvalidInput
from orders.order.order import Order
from orders.order.workflow import (
    TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    TransitionKind,
    guard_failure,
    rules_from,
    status_rank,
)

VALE = Actor(name="Vale", role=Role.COORDINATOR)
LUCHO = Actor(name="Lucho", role=Role.FULFILLMENT)
FRANCO = Actor(name="Franco", role=Role.FULFILLMENT)

_PIPELINE = [
    (TransitionKind.PICK, LUCHO, True),
    (TransitionKind.CONTROL_PICK, FRANCO, True),
    (TransitionKind.INVOICE, VALE, False),
    (TransitionKind.CONTROL_INVOICE, FRANCO, True),
    (TransitionKind.DISPATCH, LUCHO, False),
    (TransitionKind.DELIVER, LUCHO, True),
    (TransitionKind.PAY_CASH, LUCHO, False),
]


def _make_order():
    order = Order.create(client_name="Kiosco Nico", products_data=[{"name": "A", "quantity": 4}], actor=VALE)
    order._events.clear()
    return order


def _checked(order):
    items = order.working_copy()
    for item in items:
        item.checked = True
    return items


def _advance_to(status: OrderStatus) -> Order:
    order = _make_order()
    for kind, actor, needs_items in _PIPELINE:
        if order.status == status.value:
            break
        order.apply_transition(kind, actor, working_items=_checked(order) if needs_items else None)
    order._events.clear()
    return order


class TestTransitionTable:
    def test_every_kind_has_a_rule(self):
        assert set(TRANSITIONS) == set(TransitionKind)

    def test_forward_rules_only_move_forward(self):
        for rule in TRANSITIONS.values():
            assert status_rank(rule.target) >= status_rank(rule.source)

    def test_reentrant_rules(self):
        reentrant = {rule.kind for rule in TRANSITIONS.values() if rule.is_reentrant}

        assert reentrant == {
            TransitionKind.EDIT_BUDGET,
            TransitionKind.EDIT_INVOICE,
            TransitionKind.REPORT_TRANSFER,
        }

    def test_nothing_leaves_paid(self):
        assert rules_from(OrderStatus.PAGADO) == []

    def test_coordinator_transitions_keep_the_lock(self):
        for rule in TRANSITIONS.values():
            if rule.roles == frozenset({Role.COORDINATOR}):
                assert rule.releases_lock is False


class TestPipeline:
    def test_full_pipeline_is_monotonic(self):
        order = _make_order()
        ranks = [status_rank(order.status)]

        for kind, actor, needs_items in _PIPELINE:
            order.apply_transition(kind, actor, working_items=_checked(order) if needs_items else None)
            ranks.append(status_rank(order.status))

        assert ranks == sorted(ranks)
        assert order.status == OrderStatus.PAGADO.value
        assert order.is_paid is True
        assert order.payment_method == PaymentMethod.CASH.value

    def test_history_grows_by_one_for_plain_transitions(self):
        order = _make_order()
        for kind, actor, needs_items in _PIPELINE:
            before = len(order.history)
            order.apply_transition(kind, actor, working_items=_checked(order) if needs_items else None)
            assert len(order.history) == before + 1

    def test_history_is_append_only(self):
        order = _advance_to(OrderStatus.FACTURADO)
        snapshot = [(entry.id, entry.action, entry.position) for entry in order.timeline()]

        order.apply_transition(TransitionKind.CONTROL_INVOICE, FRANCO, working_items=_checked(order))

        after = [(entry.id, entry.action, entry.position) for entry in order.timeline()]
        assert after[: len(snapshot)] == snapshot

    @pytest.mark.parametrize(
        "status, kind, actor",
        [
            (OrderStatus.EN_ARMADO, TransitionKind.INVOICE, VALE),
            (OrderStatus.ARMADO, TransitionKind.DISPATCH, LUCHO),
            (OrderStatus.FACTURADO, TransitionKind.INVOICE, VALE),
            (OrderStatus.EN_TRANSITO, TransitionKind.PAY_CASH, LUCHO),
            (OrderStatus.ARMADO_CONTROLADO, TransitionKind.INVOICE, LUCHO),
            (OrderStatus.FACTURA_CONTROLADA, TransitionKind.DISPATCH, VALE),
        ],
    )
    def test_invalid_transitions_are_forbidden(self, status, kind, actor):
        order = _advance_to(status)

        with pytest.raises(Forbidden):
            order.apply_transition(kind, actor)

        assert order.status == status.value

    def test_unknown_transition(self):
        with pytest.raises(InvalidInput):
            _make_order().apply_transition("teleport", VALE)

    def test_transition_accepts_string_kind(self):
        order = _advance_to(OrderStatus.ARMADO_CONTROLADO)

        order.apply_transition("invoice", VALE)

        assert order.status == OrderStatus.FACTURADO.value


class TestPayment:
    def test_paid_order_is_terminal(self):
        order = _advance_to(OrderStatus.PAGADO)

        for kind in TransitionKind:
            with pytest.raises(Forbidden):
                order.apply_transition(kind, VALE, working_items=_checked(order))

    def test_transfer_report_waits_for_verification(self):
        order = _advance_to(OrderStatus.ENTREGADO)

        order.apply_transition(TransitionKind.REPORT_TRANSFER, LUCHO)

        assert order.status == OrderStatus.ENTREGADO.value
        assert order.payment_method == PaymentMethod.TRANSFER.value
        assert order.awaiting_transfer_verification is True
        assert order.is_paid is False
        assert order.timeline()[-1].action == "Transfer reported - awaiting verification"

    def test_coordinator_verifies_transfer(self):
        order = _advance_to(OrderStatus.ENTREGADO)
        order.apply_transition(TransitionKind.REPORT_TRANSFER, VALE)

        order.apply_transition(TransitionKind.VERIFY_TRANSFER, VALE)

        assert order.status == OrderStatus.PAGADO.value
        assert order.is_paid is True
        assert order.awaiting_transfer_verification is False

    def test_verification_requires_a_report(self):
        order = _advance_to(OrderStatus.ENTREGADO)

        with pytest.raises(Forbidden):
            order.apply_transition(TransitionKind.VERIFY_TRANSFER, VALE)

    def test_fulfillment_cannot_verify_transfer(self):
        order = _advance_to(OrderStatus.ENTREGADO)
        order.apply_transition(TransitionKind.REPORT_TRANSFER, LUCHO)

        with pytest.raises(Forbidden):
            order.apply_transition(TransitionKind.VERIFY_TRANSFER, LUCHO)

    def test_transfer_cannot_be_reported_twice(self):
        order = _advance_to(OrderStatus.ENTREGADO)
        order.apply_transition(TransitionKind.REPORT_TRANSFER, LUCHO)

        with pytest.raises(Forbidden):
            order.apply_transition(TransitionKind.REPORT_TRANSFER, LUCHO)

    def test_coordinator_cannot_collect_cash(self):
        order = _advance_to(OrderStatus.ENTREGADO)

        with pytest.raises(Forbidden):
            order.apply_transition(TransitionKind.PAY_CASH, VALE)


class TestGuardFailure:
    def test_reports_picker_assignment(self):
        order = _advance_to(OrderStatus.ARMADO)

        assert guard_failure(order, TransitionKind.CONTROL_PICK, LUCHO) == "The picker cannot verify their own picking"
        assert guard_failure(order, TransitionKind.CONTROL_PICK, FRANCO) is None
