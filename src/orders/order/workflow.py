"""Order workflow — statuses and the transition table.

State Machine:
    EN_ARMADO → ARMADO → ARMADO_CONTROLADO → FACTURADO → FACTURA_CONTROLADA
        → EN_TRANSITO → ENTREGADO → PAGADO

Re-entrant transitions: the coordinator may edit the budget at EN_ARMADO and
the invoice at ARMADO_CONTROLADO; a transfer report leaves the order at
ENTREGADO until the coordinator verifies it. Nothing leaves PAGADO.

Each transition is one row of data: source and target status, the roles
allowed to fire it, an optional assignment guard, the reconciliation pass it
runs and whether it releases the work lock.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from orders.order.actors import Actor, Role
from orders.order.errors import Forbidden, InvalidInput
from orders.order.reconciliation import ReconciliationPass


class OrderStatus(Enum):
    EN_ARMADO = "en_armado"
    ARMADO = "armado"
    ARMADO_CONTROLADO = "armado_controlado"
    FACTURADO = "facturado"
    FACTURA_CONTROLADA = "factura_controlada"
    EN_TRANSITO = "en_transito"
    ENTREGADO = "entregado"
    PAGADO = "pagado"


class PaymentMethod(Enum):
    CASH = "cash"
    TRANSFER = "transfer"


class TransitionKind(Enum):
    PICK = "pick"
    CONTROL_PICK = "control_pick"
    INVOICE = "invoice"
    CONTROL_INVOICE = "control_invoice"
    DISPATCH = "dispatch"
    DELIVER = "deliver"
    PAY_CASH = "pay_cash"
    REPORT_TRANSFER = "report_transfer"
    VERIFY_TRANSFER = "verify_transfer"
    EDIT_BUDGET = "edit_budget"
    EDIT_INVOICE = "edit_invoice"


_STATUS_ORDER = list(OrderStatus)


def status_rank(status: OrderStatus | str) -> int:
    """Position of a status along the pipeline."""
    return _STATUS_ORDER.index(OrderStatus(status))


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------
# A guard returns the reason the transition is refused, or None.
def _picker_cannot_verify(order, actor: Actor) -> str | None:
    if order.armed_by and order.armed_by == actor.name:
        return "The picker cannot verify their own picking"
    return None


def _not_paid(order, actor: Actor) -> str | None:
    if order.is_paid:
        return "Order is already paid"
    return None


def _transfer_not_reported(order, actor: Actor) -> str | None:
    if order.is_paid:
        return "Order is already paid"
    if order.awaiting_transfer_verification:
        return "A transfer is already awaiting verification"
    return None


def _awaiting_verification(order, actor: Actor) -> str | None:
    if not order.awaiting_transfer_verification:
        return "No transfer is awaiting verification"
    return None


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TransitionRule:
    kind: TransitionKind
    source: OrderStatus
    target: OrderStatus
    roles: frozenset[Role]
    label: str
    action: str
    reconciliation: ReconciliationPass | None = None
    guard: Callable | None = None
    requires_checklist: bool = False
    releases_lock: bool = False
    edits_items: bool = False

    @property
    def is_reentrant(self) -> bool:
        return self.source == self.target


_FULFILLMENT = frozenset({Role.FULFILLMENT})
_COORDINATOR = frozenset({Role.COORDINATOR})
_ANYONE = frozenset(Role)

TRANSITIONS: dict[TransitionKind, TransitionRule] = {
    rule.kind: rule
    for rule in (
        TransitionRule(
            kind=TransitionKind.EDIT_BUDGET,
            source=OrderStatus.EN_ARMADO,
            target=OrderStatus.EN_ARMADO,
            roles=_COORDINATOR,
            label="Save budget changes",
            action="Budget updated",
            edits_items=True,
        ),
        TransitionRule(
            kind=TransitionKind.PICK,
            source=OrderStatus.EN_ARMADO,
            target=OrderStatus.ARMADO,
            roles=_FULFILLMENT,
            label="Confirm picking",
            action="Order picked",
            reconciliation=ReconciliationPass.PICK,
            requires_checklist=True,
            releases_lock=True,
        ),
        TransitionRule(
            kind=TransitionKind.CONTROL_PICK,
            source=OrderStatus.ARMADO,
            target=OrderStatus.ARMADO_CONTROLADO,
            roles=_FULFILLMENT,
            label="Confirm pick verification",
            action="Picking verified",
            reconciliation=ReconciliationPass.CONTROL,
            guard=_picker_cannot_verify,
            requires_checklist=True,
            releases_lock=True,
        ),
        TransitionRule(
            kind=TransitionKind.EDIT_INVOICE,
            source=OrderStatus.ARMADO_CONTROLADO,
            target=OrderStatus.ARMADO_CONTROLADO,
            roles=_COORDINATOR,
            label="Save invoice changes",
            action="Invoice updated - products and missing recalculated",
            reconciliation=ReconciliationPass.INVOICE_RECALC,
            edits_items=True,
        ),
        TransitionRule(
            kind=TransitionKind.INVOICE,
            source=OrderStatus.ARMADO_CONTROLADO,
            target=OrderStatus.FACTURADO,
            roles=_COORDINATOR,
            label="Mark as invoiced",
            action="Order invoiced",
        ),
        TransitionRule(
            kind=TransitionKind.CONTROL_INVOICE,
            source=OrderStatus.FACTURADO,
            target=OrderStatus.FACTURA_CONTROLADA,
            roles=_FULFILLMENT,
            label="Confirm invoice verification",
            action="Invoice verified",
            reconciliation=ReconciliationPass.CONTROL,
            requires_checklist=True,
            releases_lock=True,
        ),
        TransitionRule(
            kind=TransitionKind.DISPATCH,
            source=OrderStatus.FACTURA_CONTROLADA,
            target=OrderStatus.EN_TRANSITO,
            roles=_FULFILLMENT,
            label="Dispatch",
            action="Order in transit",
            releases_lock=True,
        ),
        TransitionRule(
            kind=TransitionKind.DELIVER,
            source=OrderStatus.EN_TRANSITO,
            target=OrderStatus.ENTREGADO,
            roles=_FULFILLMENT,
            label="Confirm delivery",
            action="Order delivered",
            reconciliation=ReconciliationPass.DELIVERY,
            requires_checklist=True,
            releases_lock=True,
        ),
        TransitionRule(
            kind=TransitionKind.PAY_CASH,
            source=OrderStatus.ENTREGADO,
            target=OrderStatus.PAGADO,
            roles=_FULFILLMENT,
            label="Collect cash payment",
            action="Paid in cash",
            guard=_not_paid,
            releases_lock=True,
        ),
        TransitionRule(
            kind=TransitionKind.REPORT_TRANSFER,
            source=OrderStatus.ENTREGADO,
            target=OrderStatus.ENTREGADO,
            roles=_ANYONE,
            label="Report transfer payment",
            action="Transfer reported - awaiting verification",
            guard=_transfer_not_reported,
        ),
        TransitionRule(
            kind=TransitionKind.VERIFY_TRANSFER,
            source=OrderStatus.ENTREGADO,
            target=OrderStatus.PAGADO,
            roles=_COORDINATOR,
            label="Verify transfer",
            action="Transfer verified and confirmed",
            guard=_awaiting_verification,
        ),
    )
}


def rules_from(status: OrderStatus | str) -> list[TransitionRule]:
    """Transition rules whose source is ``status``, in table order."""
    status = OrderStatus(status)
    return [rule for rule in TRANSITIONS.values() if rule.source == status]


def guard_failure(order, kind: TransitionKind, actor: Actor) -> str | None:
    """Return why ``actor`` may not fire ``kind`` on ``order``, or None.

    Covers status, role and assignment. The checklist is evaluated against a
    working copy and is left to the caller.
    """
    rule = TRANSITIONS[kind]
    current = OrderStatus(order.status)

    if current == OrderStatus.PAGADO:
        return "Order is already paid; no further transitions are allowed"
    if current != rule.source:
        return f"Cannot {kind.value} an order in status {current.value}"
    if actor.role not in rule.roles:
        return f"Role {actor.role.value} cannot {kind.value}"
    if rule.guard is not None:
        return rule.guard(order, actor)
    return None


def check_transition(order, kind: TransitionKind | str, actor: Actor) -> TransitionRule:
    """Return the rule for ``kind`` or raise Forbidden."""
    try:
        kind = TransitionKind(kind)
    except ValueError:
        raise InvalidInput({"transition": [f"Unknown transition: {kind}"]}) from None

    reason = guard_failure(order, kind, actor)
    if reason is not None:
        raise Forbidden({"status": [reason]})
    return TRANSITIONS[kind]
