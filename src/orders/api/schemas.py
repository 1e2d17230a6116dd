"""Pydantic API schemas for the orders service.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class ProductRequest(BaseModel):
    name: str
    quantity: float
    code: str | None = None
    unit_price: float | None = None


class CreateOrderRequest(BaseModel):
    client_name: str
    client_address: str | None = None
    initial_notes: str | None = None
    total_amount: float | None = None
    products: list[ProductRequest]


class LineItemRequest(BaseModel):
    """One line of a working copy. ``id`` is absent for lines added by the coordinator."""

    id: str | None = None
    name: str = ""
    quantity: float
    code: str | None = None
    checked: bool = False
    unit_price: float | None = None


class TransitionRequest(BaseModel):
    items: list[LineItemRequest] | None = None
    note: str | None = None
    reason: str | None = None


class WorkingCopyRequest(BaseModel):
    items: list[LineItemRequest] | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class StatusResponse(BaseModel):
    status: str


class TransitionResponse(BaseModel):
    order_id: str
    status: str


class WorkLockResponse(BaseModel):
    order_id: str
    holder: str | None = None
    since: datetime | None = None


class ProductResponse(BaseModel):
    id: str
    name: str
    code: str | None = None
    quantity: float
    original_quantity: float | None = None
    unit_price: float | None = None
    subtotal: float | None = None


class LedgerEntryResponse(BaseModel):
    product_id: str
    product_name: str
    code: str | None = None
    quantity: float
    reason: str | None = None


class HistoryEntryResponse(BaseModel):
    position: int
    action: str
    actor_name: str
    recorded_at: datetime
    note: str | None = None


class OrderSummaryResponse(BaseModel):
    id: str
    client_name: str
    status: str
    is_paid: bool = False
    created_at: datetime | None = None


class OrderResponse(BaseModel):
    id: str
    client_name: str
    client_address: str | None = None
    status: str
    payment_method: str | None = None
    is_paid: bool = False
    awaiting_transfer_verification: bool = False
    armed_by: str | None = None
    controlled_by: str | None = None
    working_by: str | None = None
    initial_notes: str | None = None
    total_amount: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    products: list[ProductResponse] = Field(default_factory=list)
    missing_products: list[LedgerEntryResponse] = Field(default_factory=list)
    returned_products: list[LedgerEntryResponse] = Field(default_factory=list)
    history: list[HistoryEntryResponse] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=str(order.id),
            client_name=order.client_name,
            client_address=order.client_address,
            status=order.status,
            payment_method=order.payment_method,
            is_paid=bool(order.is_paid),
            awaiting_transfer_verification=bool(order.awaiting_transfer_verification),
            armed_by=order.armed_by,
            controlled_by=order.controlled_by,
            working_by=order.work_lock.holder if order.work_lock else None,
            initial_notes=order.initial_notes,
            total_amount=order.total_amount,
            created_at=order.created_at,
            updated_at=order.updated_at,
            products=[
                ProductResponse(
                    id=str(product.id),
                    name=product.name,
                    code=product.code,
                    quantity=product.quantity,
                    original_quantity=product.original_quantity,
                    unit_price=product.unit_price,
                    subtotal=product.subtotal,
                )
                for product in order.products or []
            ],
            missing_products=[
                LedgerEntryResponse(
                    product_id=str(entry.product_id),
                    product_name=entry.product_name,
                    code=entry.code,
                    quantity=entry.quantity,
                )
                for entry in order.missing_products or []
            ],
            returned_products=[
                LedgerEntryResponse(
                    product_id=str(entry.product_id),
                    product_name=entry.product_name,
                    code=entry.code,
                    quantity=entry.quantity,
                    reason=entry.reason,
                )
                for entry in order.returned_products or []
            ],
            history=[
                HistoryEntryResponse(
                    position=entry.position,
                    action=entry.action,
                    actor_name=entry.actor_name,
                    recorded_at=entry.recorded_at,
                    note=entry.note,
                )
                for entry in order.timeline()
            ],
        )


class ActionResponse(BaseModel):
    transition: str
    label: str
    is_available: bool
    is_blocked_by_lock: bool
    is_blocked_by_incomplete_checklist: bool
    unchecked_count: int = 0


class SummaryResponse(BaseModel):
    order_id: str
    kind: str
    text: str
