"""FastAPI routes for the store: cart, checkout, stock, items and orders.

Handlers are plain functions so FastAPI runs them in its threadpool. They
wait on per-key threading locks and the synchronous repositories, which
must never block the event loop.
"""

from fastapi import APIRouter, Header
from protean.utils.globals import current_domain

from store.alerts.monitor import monitor
from store.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartLineResponse,
    CartResponse,
    ItemResponse,
    LedgerEntryResponse,
    LedgerResponse,
    LedgerSummaryResponse,
    LowStockLineResponse,
    LowStockReportResponse,
    OrderLineResponse,
    OrderResponse,
    ReconciliationResponse,
    RecoveryFindingResponse,
    RecoveryResponse,
    RegisterItemRequest,
    StockMovementResponse,
    StockOperation,
    SweepResponse,
    UpdateCartItemRequest,
    UpdateItemRequest,
    UpdateStockRequest,
)
from store.cart.cart import load_cart
from store.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItem
from store.checkout import recovery
from store.checkout.saga import saga
from store.order.cancellation import cancel_order
from store.order.order import Order, load_order
from store.stock import catalog
from store.stock.entry import Direction, Reason
from store.stock.item import load_item
from store.stock.ledger import ledger
from store.utils.queries import fetch_all


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _cart_response(cart) -> CartResponse:
    return CartResponse(
        member_id=str(cart.member_id),
        items=[CartLineResponse(item_id=str(line.item_id), quantity=line.quantity) for line in cart.sorted_lines()],
        created_at=cart.created_at,
        updated_at=cart.updated_at,
    )


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        member_id=str(order.member_id),
        checkout_id=str(order.checkout_id),
        items=[
            OrderLineResponse(
                item_id=str(line.item_id),
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in sorted(order.items, key=lambda line: str(line.item_id))
        ],
        total_price=order.total_price,
        status=order.status,
        created_at=order.created_at,
        cancelled_at=order.cancelled_at,
        cancellation_reason=order.cancellation_reason,
    )


def _item_response(item) -> ItemResponse:
    return ItemResponse(
        item_id=str(item.id),
        name=item.name,
        quantity=item.quantity,
        low_stock_threshold=item.low_stock_threshold,
        price=item.price,
        supplier_id=str(item.supplier_id) if item.supplier_id else None,
        category=item.category,
        opening_quantity=item.opening_quantity,
        is_low=item.is_low(),
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _entry_response(entry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        entry_id=str(entry.id),
        item_id=str(entry.item_id),
        sequence=entry.sequence,
        direction=entry.direction,
        quantity=entry.quantity,
        reason=entry.reason,
        previous_stock=entry.previous_stock,
        new_stock=entry.new_stock,
        performed_by=entry.performed_by,
        reference_id=str(entry.reference_id) if entry.reference_id else None,
        notes=entry.notes,
        created_at=entry.created_at,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.post("/items", status_code=201, response_model=CartResponse)
def add_to_cart(body: AddToCartRequest) -> CartResponse:
    command = AddToCart(member_id=body.member_id, item_id=body.item_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return _cart_response(load_cart(body.member_id))


@cart_router.get("/{member_id}", response_model=CartResponse)
def get_cart(member_id: str) -> CartResponse:
    return _cart_response(load_cart(member_id))


@cart_router.put("/{member_id}/items/{item_id}", response_model=CartResponse)
def update_cart_item(member_id: str, item_id: str, body: UpdateCartItemRequest) -> CartResponse:
    command = UpdateCartItem(member_id=member_id, item_id=item_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return _cart_response(load_cart(member_id))


@cart_router.delete("/{member_id}/items/{item_id}", response_model=CartResponse)
def remove_from_cart(member_id: str, item_id: str) -> CartResponse:
    current_domain.process(RemoveFromCart(member_id=member_id, item_id=item_id), asynchronous=False)
    return _cart_response(load_cart(member_id))


@cart_router.delete("/{member_id}", response_model=CartResponse)
def clear_cart(member_id: str) -> CartResponse:
    current_domain.process(ClearCart(member_id=member_id), asynchronous=False)
    return _cart_response(load_cart(member_id))


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/recovery", response_model=RecoveryResponse)
def run_recovery() -> RecoveryResponse:
    findings = recovery.scan()
    return RecoveryResponse(
        findings=[
            RecoveryFindingResponse(
                checkout_id=finding.checkout_id,
                member_id=finding.member_id,
                status=finding.status,
                item_ids=finding.item_ids,
                movements=[StockMovementResponse(**movement) for movement in finding.movements],
                detail=finding.detail,
            )
            for finding in findings
        ],
        count=len(findings),
    )


@checkout_router.post("/{member_id}", status_code=201, response_model=OrderResponse)
def checkout(member_id: str, idempotency_key: str | None = Header(default=None)) -> OrderResponse:
    order = saga.run(member_id, idempotency_key=idempotency_key)
    return _order_response(order)


# ---------------------------------------------------------------------------
# Stock Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/stock", tags=["stock"])


@stock_router.get("/low", response_model=list[ItemResponse])
def low_stock() -> list[ItemResponse]:
    return [_item_response(item) for item in monitor.low_stock_items()]


@stock_router.get("/low/report", response_model=LowStockReportResponse)
def low_stock_report() -> LowStockReportResponse:
    report = monitor.report()
    return LowStockReportResponse(
        items=[LowStockLineResponse(**vars(line)) for line in report.lines],
        total_items=report.total_items,
        critical_items=report.critical_items,
        low_items=report.low_items,
        generated_at=report.generated_at,
    )


@stock_router.post("/low/sweep", response_model=SweepResponse)
def low_stock_sweep() -> SweepResponse:
    digest = monitor.sweep()
    if digest is None:
        return SweepResponse(digest_sent=False, item_count=0, item_ids=[])
    return SweepResponse(
        digest_sent=True,
        item_count=len(digest.items),
        item_ids=[alert.item_id for alert in digest.items],
    )


@stock_router.put("/{item_id}", response_model=ItemResponse)
def update_stock(item_id: str, body: UpdateStockRequest) -> ItemResponse:
    reason = body.reason or Reason.ADJUSTMENT
    move = ledger.increment if body.operation == StockOperation.INCREMENT else ledger.decrement
    move(
        item_id,
        body.quantity,
        reason,
        performed_by=body.performed_by,
        reference_id=body.reference_id,
        notes=body.notes,
    )
    return _item_response(load_item(item_id))


@stock_router.get("/{item_id}/ledger", response_model=LedgerResponse)
def stock_ledger(item_id: str, direction: Direction | None = None, reason: Reason | None = None) -> LedgerResponse:
    entries = ledger.history(item_id, direction=direction, reason=reason)
    return LedgerResponse(item_id=item_id, entries=[_entry_response(entry) for entry in entries], count=len(entries))


@stock_router.get("/{item_id}/ledger/summary", response_model=LedgerSummaryResponse)
def stock_ledger_summary(item_id: str) -> LedgerSummaryResponse:
    return LedgerSummaryResponse(**vars(ledger.summary(item_id)))


@stock_router.get("/{item_id}/reconciliation", response_model=ReconciliationResponse)
def stock_reconciliation(item_id: str) -> ReconciliationResponse:
    report = ledger.reconcile(item_id)
    return ReconciliationResponse(consistent=report.consistent, **vars(report))


# ---------------------------------------------------------------------------
# Item Router
# ---------------------------------------------------------------------------
item_router = APIRouter(prefix="/items", tags=["items"])


@item_router.post("", status_code=201, response_model=ItemResponse)
def register_item(body: RegisterItemRequest) -> ItemResponse:
    item = catalog.register_item(**body.model_dump())
    return _item_response(item)


@item_router.get("/{item_id}", response_model=ItemResponse)
def get_item(item_id: str) -> ItemResponse:
    return _item_response(load_item(item_id))


@item_router.put("/{item_id}", response_model=ItemResponse)
def update_item(item_id: str, body: UpdateItemRequest) -> ItemResponse:
    item = catalog.update_item(item_id, **body.model_dump(exclude_none=True))
    return _item_response(item)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/member/{member_id}", response_model=list[OrderResponse])
def member_orders(member_id: str) -> list[OrderResponse]:
    orders = sorted(fetch_all(Order, member_id=member_id), key=lambda order: order.created_at, reverse=True)
    return [_order_response(order) for order in orders]


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return _order_response(load_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel(order_id: str, body: CancelOrderRequest | None = None) -> OrderResponse:
    body = body or CancelOrderRequest()
    order = cancel_order(order_id, performed_by=body.performed_by, reason=body.reason)
    return _order_response(order)
