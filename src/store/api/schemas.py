"""Pydantic request/response schemas for the store API.

These are the external contracts (anti-corruption layer), kept separate
from the Protean commands and aggregates behind them. Field names are
snake_case on the wire.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from store.stock.entry import Reason


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    member_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class CartLineResponse(BaseModel):
    item_id: str
    quantity: int


class CartResponse(BaseModel):
    member_id: str
    items: list[CartLineResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineResponse(BaseModel):
    item_id: str
    name: str
    price: float
    quantity: int
    line_total: float


class OrderResponse(BaseModel):
    order_id: str
    member_id: str
    checkout_id: str
    items: list[OrderLineResponse]
    total_price: float
    status: str
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None


class CancelOrderRequest(BaseModel):
    performed_by: str = Field(default="system", min_length=1, max_length=255)
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Checkout recovery
# ---------------------------------------------------------------------------
class StockMovementResponse(BaseModel):
    item_id: str
    quantity: int
    previous_stock: int
    new_stock: int


class RecoveryFindingResponse(BaseModel):
    checkout_id: str
    member_id: str | None = None
    status: str | None = None
    item_ids: list[str]
    movements: list[StockMovementResponse]
    detail: str


class RecoveryResponse(BaseModel):
    findings: list[RecoveryFindingResponse]
    count: int


# ---------------------------------------------------------------------------
# Items (catalog boundary)
# ---------------------------------------------------------------------------
class RegisterItemRequest(BaseModel):
    item_id: str | None = None
    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(ge=0, default=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)
    price: float = Field(ge=0, default=0.0)
    supplier_id: str | None = None
    category: str | None = None


class UpdateItemRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    price: float | None = Field(default=None, ge=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)
    supplier_id: str | None = None
    category: str | None = None


class ItemResponse(BaseModel):
    item_id: str
    name: str
    quantity: int
    low_stock_threshold: int
    price: float
    supplier_id: str | None = None
    category: str | None = None
    opening_quantity: int
    is_low: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------
class StockOperation(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"


class UpdateStockRequest(BaseModel):
    quantity: int = Field(ge=1)
    operation: StockOperation
    reason: Reason | None = None
    performed_by: str = Field(default="system", min_length=1, max_length=255)
    reference_id: str | None = None
    notes: str | None = Field(default=None, max_length=500)


class LedgerEntryResponse(BaseModel):
    entry_id: str
    item_id: str
    sequence: int
    direction: str
    quantity: int
    reason: str
    previous_stock: int
    new_stock: int
    performed_by: str
    reference_id: str | None = None
    notes: str | None = None
    created_at: datetime | None = None


class LedgerResponse(BaseModel):
    item_id: str
    entries: list[LedgerEntryResponse]
    count: int


class LedgerSummaryResponse(BaseModel):
    item_id: str
    current_quantity: int
    opening_quantity: int
    total_in: int
    total_out: int
    entry_count: int
    by_reason: dict[str, int]


class ReconciliationResponse(BaseModel):
    item_id: str
    consistent: bool
    opening_quantity: int
    replayed_quantity: int
    recorded_quantity: int
    entry_count: int
    problems: list[str]


class LowStockLineResponse(BaseModel):
    item_id: str
    name: str
    category: str | None = None
    supplier_id: str | None = None
    quantity: int
    threshold: int
    shortfall: int
    status: str


class LowStockReportResponse(BaseModel):
    items: list[LowStockLineResponse]
    total_items: int
    critical_items: int
    low_items: int
    generated_at: datetime


class SweepResponse(BaseModel):
    digest_sent: bool
    item_count: int
    item_ids: list[str]
