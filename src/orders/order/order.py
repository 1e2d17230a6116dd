"""Order aggregate — one customer order from budget to payment.

All mutations go through ``Order.apply_transition``, which runs a fixed
pipeline:

1. work lock check (``Locked``)
2. status, role and assignment guard (``Forbidden``), then working-copy
   validation (``InvalidInput`` / ``NotFound`` / ``Forbidden`` for an
   incomplete checklist)
3. ledger reconciliation against the last-committed items
4. commit of the line items
5. history: reconciliation lines, then exactly one primary line
6. status, assignment and payment fields
7. work lock release, when the transition releases it

Steps 1 and 2 complete before anything is mutated, and the field limits of
every line, ledger entry and history entry about to be written are checked
before step 4, so a refused transition leaves the order untouched. History
entries are append-only.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

import structlog
from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from orders.domain import orders
from orders.order.actors import Actor
from orders.order.errors import Forbidden, InvalidInput, NotFound
from orders.order.events import OrderCreated, OrderTransitioned
from orders.order.locking import WorkLock, WorkLockCoordinator, get_lock_coordinator
from orders.order.reconciliation import LineItem, Reconciliation, reconcile
from orders.order.workflow import (
    OrderStatus,
    PaymentMethod,
    TransitionKind,
    TransitionRule,
    check_transition,
)

logger = structlog.get_logger(__name__)

_CONTROL_LABELS = {
    TransitionKind.CONTROL_PICK: "Control",
    TransitionKind.CONTROL_INVOICE: "Invoice control",
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orders.entity(part_of="Order")
class Product:
    code = String(max_length=50)
    name = String(required=True, max_length=255)
    quantity = Float(required=True, min_value=0.0)
    original_quantity = Float(min_value=0.0)
    unit_price = Float(min_value=0.0)
    subtotal = Float(min_value=0.0)

    def to_line_item(self, checked: bool = False) -> LineItem:
        return LineItem(
            id=str(self.id),
            name=self.name,
            quantity=self.quantity,
            original_quantity=self.original_quantity,
            code=self.code,
            checked=checked,
            unit_price=self.unit_price,
        )


@orders.entity(part_of="Order")
class MissingProduct:
    """Outstanding shortfall for one product. Never stored at zero."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    code = String(max_length=50)
    quantity = Float(required=True, min_value=0.0)


@orders.entity(part_of="Order")
class ReturnedProduct:
    """Units refused by the customer at delivery."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    code = String(max_length=50)
    quantity = Float(required=True, min_value=0.0)
    reason = String(max_length=255)


@orders.entity(part_of="Order")
class HistoryEntry:
    position = Integer(required=True, min_value=0)
    action = Text(required=True)
    actor_name = String(required=True, max_length=100)
    recorded_at = DateTime(required=True)
    note = Text()


# ---------------------------------------------------------------------------
# Working-copy helpers
# ---------------------------------------------------------------------------
def _as_float(value, field: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInput({field: [f"Not a number: {value!r}"]}) from None


def to_line_items(items: Iterable) -> list[LineItem]:
    """Coerce dicts (API/commands) or LineItems into fresh LineItems."""
    result = []
    for raw in items:
        if isinstance(raw, LineItem):
            data = vars(raw)
        elif isinstance(raw, dict):
            data = raw
        else:
            raise InvalidInput({"items": [f"Unsupported line item: {raw!r}"]})

        quantity = _as_float(data.get("quantity"), "quantity")
        if quantity is None:
            raise InvalidInput({"quantity": ["Quantity is required"]})
        if quantity < 0:
            raise InvalidInput({"quantity": ["Quantity cannot be negative"]})

        result.append(
            LineItem(
                id=str(data["id"]) if data.get("id") else None,
                name=(data.get("name") or "").strip(),
                quantity=quantity,
                original_quantity=_as_float(data.get("original_quantity"), "original_quantity"),
                code=data.get("code") or None,
                checked=bool(data.get("checked", False)),
                unit_price=_as_float(data.get("unit_price"), "unit_price"),
            )
        )
    return result


def _subtotal(item: LineItem) -> float | None:
    if item.unit_price is None:
        return None
    return round(item.unit_price * item.quantity, 2)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@orders.aggregate
class Order:
    client_name = String(required=True, max_length=255)
    client_address = String(max_length=500)
    status = String(max_length=50, choices=OrderStatus, default=OrderStatus.EN_ARMADO.value)
    products = HasMany(Product)
    missing_products = HasMany(MissingProduct)
    returned_products = HasMany(ReturnedProduct)
    history = HasMany(HistoryEntry)
    payment_method = String(max_length=20, choices=PaymentMethod)
    is_paid = Boolean(default=False)
    awaiting_transfer_verification = Boolean(default=False)
    armed_by = String(max_length=100)
    controlled_by = String(max_length=100)
    work_lock = ValueObject(WorkLock)
    initial_notes = Text()
    total_amount = Float(min_value=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_missing_entry_per_product(self):
        product_ids = [str(entry.product_id) for entry in self.missing_products or []]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"missing_products": ["A product can have only one missing entry"]})

    @invariant.post
    def verifier_is_not_the_picker(self):
        if self.armed_by and self.controlled_by and self.armed_by == self.controlled_by:
            raise ValidationError({"controlled_by": ["The picker cannot verify their own picking"]})

    @classmethod
    def create(
        cls,
        client_name: str,
        products_data: Iterable,
        actor: Actor,
        client_address: str | None = None,
        initial_notes: str | None = None,
        total_amount: float | None = None,
    ) -> "Order":
        """Create a budget in EN_ARMADO. Only coordinators create orders."""
        if not actor.is_coordinator:
            raise Forbidden({"role": ["Only coordinators can create orders"]})

        client_name = (client_name or "").strip()
        if not client_name:
            raise InvalidInput({"client_name": ["Client name is required"]})

        items = to_line_items(products_data or [])
        if not items:
            raise InvalidInput({"products": ["An order needs at least one product"]})
        for item in items:
            if not item.name:
                raise InvalidInput({"products": ["Product names cannot be blank"]})
            if item.quantity <= 0:
                raise InvalidInput({"products": [f"Quantity for {item.name} must be positive"]})

        now = datetime.now(UTC)
        order = cls(
            client_name=client_name,
            client_address=client_address,
            status=OrderStatus.EN_ARMADO.value,
            initial_notes=initial_notes,
            total_amount=total_amount,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_products(
                Product(
                    name=item.name,
                    code=item.code,
                    quantity=item.quantity,
                    original_quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=_subtotal(item),
                )
            )
        order._refresh_total()

        order.raise_(
            OrderCreated(
                order_id=order.id,
                client_name=client_name,
                status=order.status,
                actor_name=actor.name,
                item_count=len(items),
                created_at=now,
            )
        )
        return order

    # -----------------------------------------------------------------------
    # Read helpers
    # -----------------------------------------------------------------------
    def working_copy(self) -> list[LineItem]:
        """Fresh, unchecked working copy of the committed items."""
        return [product.to_line_item() for product in self.products or []]

    def timeline(self) -> list[HistoryEntry]:
        return sorted(self.history or [], key=lambda entry: entry.position)

    def missing_ledger(self) -> dict[str, float]:
        return {str(entry.product_id): entry.quantity for entry in self.missing_products or []}

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------
    def apply_transition(
        self,
        kind: TransitionKind | str,
        actor: Actor,
        working_items: Iterable | None = None,
        note: str | None = None,
        reason: str | None = None,
        coordinator: WorkLockCoordinator | None = None,
    ) -> None:
        coordinator = coordinator or get_lock_coordinator()

        coordinator.ensure_not_blocked(self, actor)
        rule = check_transition(self, kind, actor)
        working = self._prepare_working_copy(rule, working_items)

        committed = [product.to_line_item() for product in self.products or []]
        if rule.reconciliation is not None:
            result = reconcile(
                committed,
                working,
                rule.reconciliation,
                missing_ledger=self.missing_ledger(),
                label=_CONTROL_LABELS.get(rule.kind, "Control"),
                reason=reason,
            )
        else:
            result = Reconciliation(working=tuple(working or ()))

        now = datetime.now(UTC)
        self._check_field_limits(result, [*result.history, rule.action], actor, now, note)
        previous_status = self.status

        with atomic_change(self):
            if result.working:
                self._commit_products(result.working)
            self._apply_missing(result.missing)
            for line in result.returned:
                self.add_returned_products(
                    ReturnedProduct(
                        product_id=line.product_id,
                        product_name=line.product_name,
                        code=line.code,
                        quantity=line.quantity,
                        reason=line.reason,
                    )
                )
            self._append_history(list(result.history), actor, now)
            self._append_history([rule.action], actor, now, note=note)
            self._apply_side_effects(rule, actor)
            self.updated_at = now

        if rule.releases_lock:
            coordinator.release(self, actor)

        self.raise_(
            OrderTransitioned(
                order_id=self.id,
                transition=rule.kind.value,
                previous_status=previous_status,
                new_status=self.status,
                actor_name=actor.name,
                actor_role=actor.role.value,
                client_name=self.client_name,
                note=note,
                missing_count=len(self.missing_products or []),
                returned_count=len(self.returned_products or []),
                occurred_at=now,
            )
        )
        logger.info(
            "Order transition applied",
            order_id=str(self.id),
            transition=rule.kind.value,
            previous_status=previous_status,
            new_status=self.status,
            actor=actor.name,
        )

    def _prepare_working_copy(self, rule: TransitionRule, working_items) -> list[LineItem] | None:
        if rule.edits_items:
            return self._prepare_coordinator_edit(rule, working_items)
        if rule.reconciliation is None:
            return None
        if working_items is None:
            raise InvalidInput({"items": [f"A working copy is required to {rule.kind.value}"]})

        committed = {str(product.id): product for product in self.products or []}
        merged: list[LineItem] = []
        for item in to_line_items(working_items):
            product = committed.get(item.id)
            if product is None:
                raise NotFound({"product": [f"Product {item.id} is not part of this order"]})
            if any(existing.id == item.id for existing in merged):
                raise InvalidInput({"items": [f"Product {item.id} appears more than once"]})
            merged.append(product.to_line_item(checked=item.checked))
            merged[-1].quantity = item.quantity

        absent = set(committed) - {item.id for item in merged}
        if absent:
            raise InvalidInput({"items": [f"{len(absent)} product(s) missing from the working copy"]})

        if rule.requires_checklist:
            unchecked = sum(1 for item in merged if not item.checked)
            if unchecked:
                raise Forbidden({"checklist": [f"{unchecked} product(s) have not been checked"]})
        return merged

    def _prepare_coordinator_edit(self, rule: TransitionRule, working_items) -> list[LineItem]:
        if working_items is None:
            raise InvalidInput({"items": ["The edited product list is required"]})

        committed = {str(product.id): product for product in self.products or []}
        kept: list[LineItem] = []
        for item in to_line_items(working_items):
            if not item.name or item.quantity == 0:
                continue
            product = committed.get(item.id) if item.id else None
            if product is not None and any(existing.id == item.id for existing in kept):
                raise InvalidInput({"items": [f"Product {item.id} appears more than once"]})

            if rule.kind == TransitionKind.EDIT_BUDGET:
                original = item.quantity
            else:
                original = product.original_quantity if product is not None else None

            kept.append(
                LineItem(
                    id=str(product.id) if product is not None else None,
                    name=item.name,
                    quantity=item.quantity,
                    original_quantity=original,
                    code=item.code,
                    unit_price=item.unit_price,
                )
            )

        if not kept:
            raise InvalidInput({"items": ["An order needs at least one product"]})
        return kept

    def _check_field_limits(
        self, result: Reconciliation, actions: list[str], actor: Actor, now: datetime, note: str | None
    ) -> None:
        """Build throwaway entities so field validation fails before the order is touched."""
        try:
            for item in result.working:
                Product(
                    name=item.name,
                    code=item.code,
                    quantity=item.quantity,
                    original_quantity=item.original_quantity,
                    unit_price=item.unit_price,
                    subtotal=_subtotal(item),
                )
            for change in result.missing:
                if not change.removes:
                    MissingProduct(
                        product_id=change.product_id,
                        product_name=change.product_name,
                        code=change.code,
                        quantity=change.quantity,
                    )
            for line in result.returned:
                ReturnedProduct(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    code=line.code,
                    quantity=line.quantity,
                    reason=line.reason,
                )
            for action in actions:
                HistoryEntry(position=0, action=action, actor_name=actor.name, recorded_at=now, note=note)
        except ValidationError as exc:
            raise InvalidInput(exc.messages) from None

    def _commit_products(self, items: Iterable[LineItem]) -> None:
        committed = {str(product.id): product for product in self.products or []}
        kept_ids = set()

        for item in items:
            product = committed.get(item.id) if item.id else None
            if product is None:
                self.add_products(
                    Product(
                        name=item.name,
                        code=item.code,
                        quantity=item.quantity,
                        original_quantity=item.original_quantity,
                        unit_price=item.unit_price,
                        subtotal=_subtotal(item),
                    )
                )
                continue

            kept_ids.add(item.id)
            product.name = item.name
            product.code = item.code
            product.quantity = item.quantity
            product.original_quantity = item.original_quantity
            product.unit_price = item.unit_price
            product.subtotal = _subtotal(item)

        for product_id, product in committed.items():
            if product_id not in kept_ids:
                self.remove_products(product)

        self._refresh_total()

    def _apply_missing(self, changes) -> None:
        entries = {str(entry.product_id): entry for entry in self.missing_products or []}
        for change in changes:
            entry = entries.get(change.product_id)
            if change.removes:
                if entry is not None:
                    self.remove_missing_products(entry)
            elif entry is None:
                self.add_missing_products(
                    MissingProduct(
                        product_id=change.product_id,
                        product_name=change.product_name,
                        code=change.code,
                        quantity=change.quantity,
                    )
                )
            else:
                entry.product_name = change.product_name
                entry.quantity = change.quantity

    def _append_history(self, actions: list[str], actor: Actor, now: datetime, note: str | None = None) -> None:
        position = len(self.history or [])
        for action in actions:
            self.add_history(
                HistoryEntry(
                    position=position,
                    action=action,
                    actor_name=actor.name,
                    recorded_at=now,
                    note=note,
                )
            )
            position += 1

    def _apply_side_effects(self, rule: TransitionRule, actor: Actor) -> None:
        if rule.kind == TransitionKind.PICK:
            self.armed_by = actor.name
        elif rule.kind == TransitionKind.CONTROL_PICK:
            self.controlled_by = actor.name
        elif rule.kind == TransitionKind.PAY_CASH:
            self.is_paid = True
            self.payment_method = PaymentMethod.CASH.value
        elif rule.kind == TransitionKind.REPORT_TRANSFER:
            self.payment_method = PaymentMethod.TRANSFER.value
            self.awaiting_transfer_verification = True
        elif rule.kind == TransitionKind.VERIFY_TRANSFER:
            self.is_paid = True
            self.awaiting_transfer_verification = False

        self.status = rule.target.value

    def _refresh_total(self) -> None:
        subtotals = [product.subtotal for product in self.products or [] if product.subtotal is not None]
        if subtotals:
            self.total_amount = round(sum(subtotals), 2)
