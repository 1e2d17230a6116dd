"""Ledger reconciliation — diffing a working copy against committed line items.

Every pass is a pure function of the last-committed items, the edited
working copy and the current missing ledger. The result describes what the
aggregate must commit: upserts into the missing ledger, new returned lines,
human-readable history lines and the (possibly rebased) working copy.

Passes:

- ``PICK``: checked items whose quantity fell below the baseline become
  missing entries. Any quantity change is reported.
- ``CONTROL``: checked items are re-verified. The missing ledger converges to
  ``max(0, original - quantity)`` per product. Extra units are reported but
  never touch the ledger.
- ``INVOICE_RECALC``: the coordinator's invoice edit. Same convergence over
  all items, after which every baseline is rebased to the invoiced quantity.
  Missing entries of lines dropped from the invoice are cleared.
- ``DELIVERY``: checked lines edited during the pass are returned for their
  full shortfall against the baseline.
  The missing ledger is not touched.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum

RETURN_REASON = "returned by customer at delivery"


class ReconciliationPass(Enum):
    PICK = "pick"
    CONTROL = "control"
    INVOICE_RECALC = "invoice_recalc"
    DELIVERY = "delivery"


@dataclass
class LineItem:
    """Mutable working-copy line. ``checked`` is never persisted."""

    id: str | None
    name: str
    quantity: float
    original_quantity: float | None = None
    code: str | None = None
    checked: bool = False
    unit_price: float | None = None

    @property
    def shortfall(self) -> float | None:
        if self.original_quantity is None:
            return None
        return self.original_quantity - self.quantity


@dataclass(frozen=True)
class MissingChange:
    """Target state of a product's missing entry. Zero quantity removes it."""

    product_id: str
    product_name: str
    code: str | None
    quantity: float

    @property
    def removes(self) -> bool:
        return self.quantity <= 0


@dataclass(frozen=True)
class ReturnedLine:
    product_id: str
    product_name: str
    code: str | None
    quantity: float
    reason: str


@dataclass(frozen=True)
class Reconciliation:
    missing: tuple[MissingChange, ...] = ()
    returned: tuple[ReturnedLine, ...] = ()
    history: tuple[str, ...] = ()
    working: tuple[LineItem, ...] = ()


def format_quantity(value: float) -> str:
    """Render 8.0 as "8" and 2.5 as "2.5"."""
    return f"{value:g}"


def reconcile(
    committed: Iterable[LineItem],
    working: Iterable[LineItem],
    pass_: ReconciliationPass,
    missing_ledger: Mapping[str, float] | None = None,
    label: str = "Control",
    reason: str | None = None,
) -> Reconciliation:
    """Run one reconciliation pass and describe the resulting changes."""
    committed_by_id = {item.id: item for item in committed if item.id is not None}
    working = tuple(working)
    ledger = dict(missing_ledger or {})

    if pass_ == ReconciliationPass.PICK:
        return _pick(working)
    if pass_ == ReconciliationPass.CONTROL:
        return _converge(
            working,
            committed_by_id,
            ledger,
            include=lambda item: item.checked,
            label=label,
        )
    if pass_ == ReconciliationPass.INVOICE_RECALC:
        result = _converge(working, committed_by_id, ledger, include=lambda item: True, label=None)
        cleared, cleared_history = _clear_dropped(working, committed_by_id, ledger)
        rebased = tuple(replace(item, original_quantity=item.quantity) for item in working)
        return replace(
            result,
            missing=result.missing + cleared,
            history=result.history + cleared_history,
            working=rebased,
        )
    if pass_ == ReconciliationPass.DELIVERY:
        return _delivery(working, committed_by_id, reason or RETURN_REASON)

    raise ValueError(f"Unknown reconciliation pass: {pass_}")


def _pick(working: tuple[LineItem, ...]) -> Reconciliation:
    missing: list[MissingChange] = []
    history: list[str] = []

    for item in working:
        shortfall = item.shortfall
        if shortfall is None:
            continue

        if item.quantity != item.original_quantity:
            line = (
                f"Quantity updated: {item.name} from {format_quantity(item.original_quantity)} "
                f"to {format_quantity(item.quantity)}"
            )
            if shortfall > 0:
                line += f" ({format_quantity(shortfall)} missing)"
            history.append(line)

        if item.checked and shortfall > 0:
            missing.append(MissingChange(item.id, item.name, item.code, shortfall))

    return Reconciliation(missing=tuple(missing), history=tuple(history), working=working)


def _converge(working, committed_by_id, ledger, include, label) -> Reconciliation:
    missing: list[MissingChange] = []
    history: list[str] = []

    for item in working:
        if item.original_quantity is None or not include(item):
            continue

        shortfall = item.original_quantity - item.quantity
        expected = max(0.0, shortfall)

        if label is not None:
            before = committed_by_id.get(item.id)
            previous = before.quantity if before is not None else item.original_quantity
            if item.quantity != previous:
                if shortfall > 0:
                    outcome = f"{format_quantity(shortfall)} missing"
                elif shortfall < 0:
                    outcome = f"{format_quantity(-shortfall)} extra found"
                else:
                    outcome = "no missing"
                history.append(
                    f"{label}: {item.name} adjusted from {format_quantity(previous)} "
                    f"to {format_quantity(item.quantity)} ({outcome})"
                )

        existing = ledger.get(item.id, 0.0)
        if expected == existing:
            continue

        missing.append(MissingChange(item.id, item.name, item.code, expected))
        if expected == 0:
            history.append(f"Missing resolved: {item.name}, all {format_quantity(existing)} found")
        elif existing == 0:
            history.append(f"New missing detected: {item.name} - {format_quantity(expected)}")
        elif expected < existing:
            history.append(
                f"Missing reduced: {item.name} from {format_quantity(existing)} to "
                f"{format_quantity(expected)} ({format_quantity(existing - expected)} found)"
            )
        else:
            history.append(
                f"Missing increased: {item.name} from {format_quantity(existing)} to {format_quantity(expected)}"
            )

    return Reconciliation(missing=tuple(missing), history=tuple(history), working=working)


def _clear_dropped(working, committed_by_id, ledger) -> tuple[tuple[MissingChange, ...], tuple[str, ...]]:
    """Remove missing entries of products no longer on the order."""
    kept = {item.id for item in working if item.id is not None}
    changes: list[MissingChange] = []
    history: list[str] = []

    for product_id, quantity in ledger.items():
        if product_id in kept or quantity <= 0:
            continue
        before = committed_by_id.get(product_id)
        name, code = (before.name, before.code) if before is not None else (product_id, None)
        changes.append(MissingChange(product_id, name, code, 0.0))
        history.append(f"Missing cleared: {name}, {format_quantity(quantity)} removed from the order")

    return tuple(changes), tuple(history)


def _delivery(working, committed_by_id, reason: str) -> Reconciliation:
    returned: list[ReturnedLine] = []
    history: list[str] = []

    for item in working:
        shortfall = item.shortfall
        if not item.checked or shortfall is None or shortfall <= 0:
            continue

        # Only lines edited during this pass are returned, for their full shortfall.
        before = committed_by_id.get(item.id)
        if before is None or before.quantity == item.quantity:
            continue

        returned.append(ReturnedLine(item.id, item.name, item.code, shortfall, reason))
        history.append(f"Delivery: {item.name} - {format_quantity(shortfall)} units returned by customer")

    return Reconciliation(returned=tuple(returned), history=tuple(history), working=working)
