"""FastAPI routes for the orders service.

Every route identifies the acting user through the ``X-Actor-Name`` and
``X-Actor-Role`` headers (``X-Actor-Id`` is optional).
"""

import json

from fastapi import APIRouter, Depends, Header, Query
from protean.utils.globals import current_domain

from orders.api.schemas import (
    ActionResponse,
    CreateOrderRequest,
    OrderIdResponse,
    OrderResponse,
    OrderSummaryResponse,
    StatusResponse,
    SummaryResponse,
    TransitionRequest,
    TransitionResponse,
    WorkingCopyRequest,
    WorkLockResponse,
)
from orders.order.actions import next_actions
from orders.order.actors import Actor
from orders.order.creation import CreateOrder
from orders.order.deletion import DeleteOrder
from orders.order.errors import InvalidInput
from orders.order.locking import get_lock_coordinator
from orders.order.locks import AcquireWorkLock, ReleaseWorkLock
from orders.order.queries import list_orders, load_order
from orders.order.summary import completed_order_summary, invoice_summary_text, missing_products_text
from orders.order.transitions import ApplyTransition
from orders.utils.logging import bind_actor

_SUMMARIES = {
    "completed": completed_order_summary,
    "invoice": invoice_summary_text,
    "missing": missing_products_text,
}


def current_actor(
    x_actor_name: str = Header(...),
    x_actor_role: str = Header(...),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    actor = Actor.build(x_actor_name, x_actor_role, x_actor_id)
    bind_actor(actor.name, actor.role.value)
    return actor


def _actor_fields(actor: Actor) -> dict:
    return {"actor_id": actor.id, "actor_name": actor.name, "actor_role": actor.role.value}


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(body: CreateOrderRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    """Create a budget from a product list."""
    command = CreateOrder(
        client_name=body.client_name,
        client_address=body.client_address,
        initial_notes=body.initial_notes,
        total_amount=body.total_amount,
        products=json.dumps([product.model_dump() for product in body.products]),
        **_actor_fields(actor),
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=list[OrderSummaryResponse])
async def get_orders(
    view: str = Query(default="all"),
    search: str | None = Query(default=None),
) -> list[OrderSummaryResponse]:
    """List orders newest first, optionally filtered by view and search term."""
    return [
        OrderSummaryResponse(
            id=str(order.id),
            client_name=order.client_name,
            status=order.status,
            is_paid=bool(order.is_paid),
            created_at=order.created_at,
        )
        for order in list_orders(view=view, search=search)
    ]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(load_order(order_id))


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def delete_order(order_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    """Delete an order regardless of its status."""
    current_domain.process(DeleteOrder(order_id=order_id, actor_name=actor.name), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Work lock
# ---------------------------------------------------------------------------
def _lock_response(order_id: str) -> WorkLockResponse:
    lock = get_lock_coordinator().query(load_order(order_id))
    if lock is None:
        return WorkLockResponse(order_id=order_id)
    return WorkLockResponse(order_id=order_id, holder=lock.holder, since=lock.since)


@order_router.get("/{order_id}/lock", response_model=WorkLockResponse)
async def get_work_lock(order_id: str) -> WorkLockResponse:
    return _lock_response(order_id)


@order_router.put("/{order_id}/lock", response_model=WorkLockResponse)
async def acquire_work_lock(order_id: str, actor: Actor = Depends(current_actor)) -> WorkLockResponse:
    """Start editing. Coordinators succeed without taking the lock."""
    current_domain.process(AcquireWorkLock(order_id=order_id, **_actor_fields(actor)), asynchronous=False)
    return _lock_response(order_id)


@order_router.delete("/{order_id}/lock", response_model=StatusResponse)
async def release_work_lock(
    order_id: str,
    force: bool = Query(default=False),
    actor: Actor = Depends(current_actor),
) -> StatusResponse:
    """Stop editing. ``force`` lets a coordinator clear someone else's lock."""
    released = current_domain.process(
        ReleaseWorkLock(order_id=order_id, force=force, **_actor_fields(actor)),
        asynchronous=False,
    )
    return StatusResponse(status="released" if released else "unchanged")


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
@order_router.put("/{order_id}/transitions/{transition}", response_model=TransitionResponse)
async def apply_transition(
    order_id: str,
    transition: str,
    body: TransitionRequest | None = None,
    actor: Actor = Depends(current_actor),
) -> TransitionResponse:
    body = body or TransitionRequest()
    items = json.dumps([item.model_dump() for item in body.items]) if body.items is not None else None
    command = ApplyTransition(
        order_id=order_id,
        transition=transition,
        items=items,
        note=body.note,
        reason=body.reason,
        **_actor_fields(actor),
    )
    status = current_domain.process(command, asynchronous=False)
    return TransitionResponse(order_id=order_id, status=status)


@order_router.post("/{order_id}/next-actions", response_model=list[ActionResponse])
async def get_next_actions(
    order_id: str,
    body: WorkingCopyRequest | None = None,
    actor: Actor = Depends(current_actor),
) -> list[ActionResponse]:
    """Transitions offered to the actor, evaluated against an optional working copy."""
    order = load_order(order_id)
    items = [item.model_dump() for item in body.items] if body and body.items is not None else None
    return [
        ActionResponse(
            transition=option.transition.value,
            label=option.label,
            is_available=option.is_available,
            is_blocked_by_lock=option.is_blocked_by_lock,
            is_blocked_by_incomplete_checklist=option.is_blocked_by_incomplete_checklist,
            unchecked_count=option.unchecked_count,
        )
        for option in next_actions(order, actor, working_items=items)
    ]


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------
@order_router.get("/{order_id}/summary", response_model=SummaryResponse)
async def get_summary(order_id: str, kind: str = Query(default="completed")) -> SummaryResponse:
    if kind not in _SUMMARIES:
        raise InvalidInput({"kind": [f"Unknown summary kind: {kind}"]})
    text = _SUMMARIES[kind](load_order(order_id))
    return SummaryResponse(order_id=order_id, kind=kind, text=text)
