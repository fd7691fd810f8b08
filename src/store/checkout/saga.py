"""Checkout saga: cart -> validated lines -> decremented stock -> order -> empty cart.

The saga takes the member's checkout lock, then every item lock in sorted
item-id order, and holds them until it ends. Each step is a separate unit of
work recorded on the Checkout aggregate, so the record always says how far a
checkout got:

1. Validation reads live stock for every line. Any shortfall or missing item
   aborts with nothing mutated.
2. Each line is decremented through the Stock Ledger with reason SALE and the
   checkout id as reference.
3. The order is placed from the items' current names and prices.
4. The checked-out units are taken off the cart and the record marked DONE.

A failure after the first decrement committed marks the record
RECONCILIATION_REQUIRED and raises ``PersistencePartialFailureError``. Stock is
never silently given back; ``recovery.scan`` reports such checkouts.
"""

import json

import structlog
from protean.utils.globals import current_domain
from structlog.contextvars import bound_contextvars

from store.cart.cart import find_cart
from store.checkout.record import CheckoutStatus, find_by_idempotency_key
from store.checkout.steps import (
    AbortCheckout,
    BeginCheckout,
    ClearCheckedOutCart,
    FinishCheckout,
    FlagForReconciliation,
    MarkDecrementing,
)
from store.errors import (
    EmptyCartError,
    InsufficientStockError,
    PersistencePartialFailureError,
    StoreError,
)
from store.order.order import Order, load_order
from store.order.placement import PlaceOrder
from store.stock.entry import Reason
from store.stock.item import load_item
from store.stock.ledger import ledger
from store.utils.locks import item_key, locks, member_key

logger = structlog.get_logger(__name__)


class CheckoutSaga:
    def run(self, member_id, idempotency_key=None) -> Order:
        member_id = str(member_id)

        with bound_contextvars(member_id=member_id), locks.hold([member_key(member_id)]):
            if idempotency_key:
                existing = find_by_idempotency_key(member_id, idempotency_key)
                if existing is not None:
                    order = self._resume(existing)
                    if order is not None:
                        return order

            return self._checkout(member_id, idempotency_key)

    # -------------------------------------------------------------------
    # Fresh run
    # -------------------------------------------------------------------
    def _checkout(self, member_id, idempotency_key) -> Order:
        cart = find_cart(member_id)
        if cart is None or not cart.items:
            raise EmptyCartError(member_id)

        lines = [(str(line.item_id), line.quantity) for line in cart.sorted_lines()]

        with locks.hold([item_key(item_id) for item_id, _ in lines]):
            checkout_id = current_domain.process(
                BeginCheckout(member_id=member_id, lines=json.dumps(lines), idempotency_key=idempotency_key),
                asynchronous=False,
            )
            log = logger.bind(checkout_id=checkout_id)
            log.info("checkout_started", lines=len(lines), idempotency_key=idempotency_key)

            try:
                self._validate(lines)
            except StoreError as exc:
                self._abort(checkout_id, exc)
                raise

            current_domain.process(MarkDecrementing(checkout_id=checkout_id), asynchronous=False)

            try:
                for item_id, quantity in lines:
                    ledger.decrement(item_id, quantity, Reason.SALE, performed_by=member_id, reference_id=checkout_id)
                order_id = current_domain.process(PlaceOrder(checkout_id=checkout_id), asynchronous=False)
                current_domain.process(ClearCheckedOutCart(checkout_id=checkout_id), asynchronous=False)
                current_domain.process(FinishCheckout(checkout_id=checkout_id), asynchronous=False)
            except Exception as exc:
                # Committed SALE entries decide between abort and escalate
                decremented = ledger.entries_for_reference(checkout_id)
                if not decremented:
                    self._abort(checkout_id, exc)
                    raise
                raise self._escalate(checkout_id, member_id, decremented, exc) from exc

        order = load_order(order_id)
        log.info("checkout_completed", order_id=order_id, total_price=order.total_price)
        return order

    def _validate(self, lines):
        """Check every line against live stock before anything is written."""
        for item_id, quantity in lines:
            item = load_item(item_id)
            if quantity > item.quantity:
                raise InsufficientStockError(item.id, available=item.quantity, requested=quantity)

    def _abort(self, checkout_id, exc):
        reason = exc.code if isinstance(exc, StoreError) else type(exc).__name__
        current_domain.process(AbortCheckout(checkout_id=checkout_id, reason=reason), asynchronous=False)
        logger.info("checkout_aborted", checkout_id=checkout_id, reason=reason, detail=str(exc))

    def _escalate(self, checkout_id, member_id, decremented, exc) -> PersistencePartialFailureError:
        movements = [
            {
                "item_id": str(entry.item_id),
                "quantity": entry.quantity,
                "previous_stock": entry.previous_stock,
                "new_stock": entry.new_stock,
            }
            for entry in decremented
        ]
        logger.critical(
            "checkout_partial_failure",
            checkout_id=checkout_id,
            item_ids=[movement["item_id"] for movement in movements],
            movements=movements,
            error=repr(exc),
        )

        try:
            current_domain.process(
                FlagForReconciliation(checkout_id=checkout_id, reason=repr(exc)),
                asynchronous=False,
            )
        except Exception:
            logger.exception("checkout_flag_failed", checkout_id=checkout_id)

        return PersistencePartialFailureError(
            f"Checkout {checkout_id} decremented stock but did not complete",
            checkout_id=checkout_id,
            member_id=member_id,
            movements=movements,
        )

    # -------------------------------------------------------------------
    # Retries under an idempotency key
    # -------------------------------------------------------------------
    def _resume(self, checkout) -> Order | None:
        """Finish or replay an earlier attempt. ``None`` means run a fresh saga."""
        checkout_id = str(checkout.id)
        status = checkout.current_status
        log = logger.bind(checkout_id=checkout_id)

        if status == CheckoutStatus.DONE:
            log.info("checkout_replayed", order_id=str(checkout.order_id))
            return load_order(checkout.order_id)

        if status in (CheckoutStatus.ORDER_CREATED, CheckoutStatus.CART_CLEARED):
            if status == CheckoutStatus.ORDER_CREATED:
                current_domain.process(ClearCheckedOutCart(checkout_id=checkout_id), asynchronous=False)
            current_domain.process(FinishCheckout(checkout_id=checkout_id), asynchronous=False)
            log.info("checkout_resumed", from_status=status.value, order_id=str(checkout.order_id))
            return load_order(checkout.order_id)

        if status == CheckoutStatus.VALIDATING:
            # Holding the member lock means no live saga owns this record
            current_domain.process(AbortCheckout(checkout_id=checkout_id, reason="Stale"), asynchronous=False)
            log.info("checkout_stale_aborted", from_status=status.value)
            return None

        raise PersistencePartialFailureError(
            f"Checkout {checkout_id} is {status.value} and needs reconciliation",
            checkout_id=checkout_id,
            status=status.value,
        )


saga = CheckoutSaga()
