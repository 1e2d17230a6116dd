"""Action resolver — which transitions an actor is offered on an order."""

from collections.abc import Iterable
from dataclasses import dataclass

from orders.order.actors import Actor
from orders.order.locking import WorkLockCoordinator, get_lock_coordinator
from orders.order.workflow import TransitionKind, guard_failure, rules_from


@dataclass(frozen=True)
class ActionOption:
    transition: TransitionKind
    label: str
    is_blocked_by_lock: bool = False
    is_blocked_by_incomplete_checklist: bool = False
    unchecked_count: int = 0

    @property
    def is_available(self) -> bool:
        return not (self.is_blocked_by_lock or self.is_blocked_by_incomplete_checklist)


def next_actions(
    order,
    actor: Actor,
    working_items: Iterable | None = None,
    coordinator: WorkLockCoordinator | None = None,
) -> list[ActionOption]:
    """List the transitions ``actor`` may fire from the order's current status.

    Options failing the status, role or assignment guard are omitted. Options
    that would be refused by the work lock or an incomplete checklist are
    listed with the corresponding flag set.
    """
    coordinator = coordinator or get_lock_coordinator()
    locked = coordinator.blocks(order, actor)

    if working_items is None:
        items = order.working_copy()
    else:
        items = list(working_items)
    unchecked = sum(1 for item in items if not _is_checked(item))

    options = []
    for rule in rules_from(order.status):
        if guard_failure(order, rule.kind, actor) is not None:
            continue
        incomplete = rule.requires_checklist and unchecked > 0
        options.append(
            ActionOption(
                transition=rule.kind,
                label=rule.label,
                is_blocked_by_lock=locked,
                is_blocked_by_incomplete_checklist=incomplete,
                unchecked_count=unchecked if rule.requires_checklist else 0,
            )
        )
    return options


def _is_checked(item) -> bool:
    if isinstance(item, dict):
        return bool(item.get("checked", False))
    return bool(item.checked)
