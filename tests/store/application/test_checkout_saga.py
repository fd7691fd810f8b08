"""Application tests for the checkout saga."""

import json

import pytest
from protean import current_domain
from store.alerts.monitor import monitor
from store.cart.cart import load_cart
from store.cart.items import AddToCart
from store.checkout.record import Checkout, CheckoutStatus, load_checkout
from store.checkout.saga import saga
from store.checkout.steps import BeginCheckout, MarkDecrementing
from store.errors import (
    EmptyCartError,
    InsufficientStockError,
    ItemNotFoundError,
    PersistencePartialFailureError,
)
from store.order.order import Order, OrderStatus
from store.order.placement import PlaceOrder
from store.stock import catalog
from store.stock.entry import LedgerEntry, Reason
from store.stock.item import StockItem, load_item
from store.stock.ledger import ledger
from store.utils.queries import fetch_all


@pytest.fixture()
def stocked(make_item, fill_cart):
    """Two items on the shelf and member-1's cart holding some of each."""
    whey = make_item(name="Whey Protein 2kg", quantity=10, price=49.99)
    shaker = make_item(name="Shaker Bottle", quantity=5, price=7.15)
    fill_cart("member-1", {whey.id: 2, shaker.id: 3})
    return whey, shaker


class TestHappyPath:
    def test_checkout_creates_order_snapshot(self, stocked):
        whey, shaker = stocked
        order = saga.run("member-1")

        assert order.status == OrderStatus.COMPLETED.value
        assert order.total_price == 121.43
        lines = {str(line.item_id): line for line in order.items}
        assert lines[str(whey.id)].name == "Whey Protein 2kg"
        assert lines[str(shaker.id)].quantity == 3

    def test_checkout_decrements_stock_through_the_ledger(self, stocked):
        whey, shaker = stocked
        order = saga.run("member-1")

        assert load_item(whey.id).quantity == 8
        assert load_item(shaker.id).quantity == 2

        entries = ledger.entries_for_reference(order.checkout_id)
        assert len(entries) == 2
        assert {entry.reason for entry in entries} == {Reason.SALE.value}
        assert {entry.performed_by for entry in entries} == {"member-1"}

    def test_checkout_clears_cart_and_finishes_record(self, stocked):
        order = saga.run("member-1")

        assert len(load_cart("member-1").items) == 0
        record = load_checkout(order.checkout_id)
        assert record.current_status == CheckoutStatus.DONE
        assert str(record.order_id) == str(order.id)
        assert [entry["status"] for entry in record.transitions()][-4:] == [
            "DECREMENTING",
            "ORDER_CREATED",
            "CART_CLEARED",
            "DONE",
        ]

    def test_later_price_change_does_not_touch_order(self, stocked):
        whey, _ = stocked
        order = saga.run("member-1")

        catalog.update_item(whey.id, name="Whey Protein (new formula)", price=59.99)

        stored = current_domain.repository_for(Order).get(str(order.id))
        line = next(line for line in stored.items if str(line.item_id) == str(whey.id))
        assert line.name == "Whey Protein 2kg"
        assert line.price == 49.99
        assert stored.total_price == 121.43

    def test_buying_the_last_unit(self, make_item, fill_cart):
        item = make_item(quantity=1)
        fill_cart("member-1", {item.id: 1})
        saga.run("member-1")
        assert load_item(item.id).quantity == 0


class TestRejections:
    def test_missing_cart(self):
        with pytest.raises(EmptyCartError):
            saga.run("member-1")

    def test_empty_cart(self, stocked):
        saga.run("member-1")
        with pytest.raises(EmptyCartError):
            saga.run("member-1")

    def test_insufficient_stock_leaves_no_trace(self, stocked):
        whey, shaker = stocked
        ledger.decrement(shaker.id, 4, Reason.DAMAGE, performed_by="staff-1")
        entries_before = len(fetch_all(LedgerEntry))

        with pytest.raises(InsufficientStockError) as exc_info:
            saga.run("member-1")

        assert exc_info.value.item_id == str(shaker.id)
        assert exc_info.value.available == 1
        assert exc_info.value.requested == 3

        assert load_item(whey.id).quantity == 10
        assert load_item(shaker.id).quantity == 1
        assert len(fetch_all(LedgerEntry)) == entries_before
        assert fetch_all(Order) == []
        assert load_cart("member-1").quantity_of(whey.id) == 2

        records = fetch_all(Checkout, member_id="member-1")
        assert [record.status for record in records] == [CheckoutStatus.ABORTED.value]
        assert records[0].failure_reason == "InsufficientStock"

    def test_item_removed_from_catalog_aborts(self, stocked):
        whey, _ = stocked
        current_domain.repository_for(StockItem)._dao.delete(load_item(whey.id))

        with pytest.raises(ItemNotFoundError):
            saga.run("member-1")
        assert fetch_all(Order) == []


class TestIdempotency:
    def test_same_key_returns_the_original_order(self, stocked):
        whey, _ = stocked
        first = saga.run("member-1", idempotency_key="key-1")
        second = saga.run("member-1", idempotency_key="key-1")

        assert str(second.id) == str(first.id)
        assert len(fetch_all(Order)) == 1
        assert len(fetch_all(LedgerEntry, reason=Reason.SALE.value)) == 2
        assert load_item(whey.id).quantity == 8

    def test_different_key_is_a_new_checkout(self, stocked, fill_cart):
        whey, _ = stocked
        saga.run("member-1", idempotency_key="key-1")
        fill_cart("member-1", {whey.id: 1})
        saga.run("member-1", idempotency_key="key-2")
        assert len(fetch_all(Order)) == 2

    def test_aborted_attempt_does_not_block_retry(self, stocked):
        whey, shaker = stocked
        ledger.decrement(shaker.id, 4, Reason.DAMAGE, performed_by="staff-1")
        with pytest.raises(InsufficientStockError):
            saga.run("member-1", idempotency_key="key-1")

        ledger.increment(shaker.id, 10, Reason.PURCHASE, performed_by="staff-1")
        order = saga.run("member-1", idempotency_key="key-1")
        assert order.status == OrderStatus.COMPLETED.value

    def test_resumes_a_checkout_left_at_order_created(self, stocked):
        whey, shaker = stocked
        lines = [[str(whey.id), 2], [str(shaker.id), 3]]
        checkout_id = current_domain.process(
            BeginCheckout(member_id="member-1", lines=json.dumps(lines), idempotency_key="key-1"),
            asynchronous=False,
        )
        current_domain.process(MarkDecrementing(checkout_id=checkout_id), asynchronous=False)
        for item_id, quantity in lines:
            ledger.decrement(item_id, quantity, Reason.SALE, performed_by="member-1", reference_id=checkout_id)
        order_id = current_domain.process(PlaceOrder(checkout_id=checkout_id), asynchronous=False)

        order = saga.run("member-1", idempotency_key="key-1")

        assert str(order.id) == order_id
        assert load_checkout(checkout_id).current_status == CheckoutStatus.DONE
        assert len(load_cart("member-1").items) == 0
        assert load_item(whey.id).quantity == 8

    def test_stale_validating_record_is_replaced(self, stocked):
        whey, _ = stocked
        stale_id = current_domain.process(
            BeginCheckout(member_id="member-1", lines=json.dumps([[str(whey.id), 2]]), idempotency_key="key-1"),
            asynchronous=False,
        )

        order = saga.run("member-1", idempotency_key="key-1")

        assert load_checkout(stale_id).current_status == CheckoutStatus.ABORTED
        assert str(order.checkout_id) != stale_id

    def test_record_stuck_decrementing_refuses_retry(self, stocked):
        whey, _ = stocked
        checkout_id = current_domain.process(
            BeginCheckout(member_id="member-1", lines=json.dumps([[str(whey.id), 2]]), idempotency_key="key-1"),
            asynchronous=False,
        )
        current_domain.process(MarkDecrementing(checkout_id=checkout_id), asynchronous=False)

        with pytest.raises(PersistencePartialFailureError):
            saga.run("member-1", idempotency_key="key-1")
        assert fetch_all(Order) == []


class TestPartialFailure:
    @pytest.fixture()
    def failing_placement(self, monkeypatch):
        def _boom(**kwargs):
            raise RuntimeError("order store unavailable")

        monkeypatch.setattr("store.checkout.saga.PlaceOrder", _boom)

    def test_failure_after_decrement_requires_reconciliation(self, stocked, failing_placement):
        whey, shaker = stocked

        with pytest.raises(PersistencePartialFailureError) as exc_info:
            saga.run("member-1")

        details = exc_info.value.details
        assert {movement["item_id"] for movement in details["movements"]} == {str(whey.id), str(shaker.id)}

        record = load_checkout(details["checkout_id"])
        assert record.current_status == CheckoutStatus.RECONCILIATION_REQUIRED
        assert "order store unavailable" in record.failure_reason

    def test_stock_is_not_given_back(self, stocked, failing_placement):
        whey, shaker = stocked
        with pytest.raises(PersistencePartialFailureError):
            saga.run("member-1")

        assert load_item(whey.id).quantity == 8
        assert load_item(shaker.id).quantity == 2
        assert fetch_all(Order) == []
        assert ledger.reconcile(whey.id).consistent

    def test_retry_with_same_key_stays_failed(self, stocked, failing_placement, monkeypatch):
        with pytest.raises(PersistencePartialFailureError):
            saga.run("member-1", idempotency_key="key-1")

        monkeypatch.setattr("store.checkout.saga.PlaceOrder", PlaceOrder)
        with pytest.raises(PersistencePartialFailureError):
            saga.run("member-1", idempotency_key="key-1")
        assert fetch_all(Order) == []

    def test_error_after_first_sale_commits_is_escalated(self, stocked, monkeypatch):
        commit = ledger.decrement

        def _commit_then_fail(*args, **kwargs):
            commit(*args, **kwargs)
            raise RuntimeError("connection lost after commit")

        monkeypatch.setattr(ledger, "decrement", _commit_then_fail)
        with pytest.raises(PersistencePartialFailureError) as exc_info:
            saga.run("member-1", idempotency_key="key-1")

        details = exc_info.value.details
        assert len(details["movements"]) == 1
        record = load_checkout(details["checkout_id"])
        assert record.current_status == CheckoutStatus.RECONCILIATION_REQUIRED

        monkeypatch.undo()
        with pytest.raises(PersistencePartialFailureError):
            saga.run("member-1", idempotency_key="key-1")
        assert len(fetch_all(LedgerEntry, reason=Reason.SALE.value)) == 1
        assert fetch_all(Order) == []


class TestMonitorFailure:
    def test_checkout_completes_when_evaluation_raises(self, stocked, monkeypatch):
        whey, shaker = stocked

        def _broken(item_id):
            raise RuntimeError("alert store unavailable")

        monkeypatch.setattr(monitor, "observe", _broken)
        order = saga.run("member-1", idempotency_key="key-1")

        assert load_checkout(order.checkout_id).current_status == CheckoutStatus.DONE
        assert load_item(whey.id).quantity == 8
        assert load_item(shaker.id).quantity == 2


class TestCartChangedDuringCheckout:
    def test_lines_added_mid_checkout_stay_in_the_cart(self, stocked, make_item, monkeypatch):
        whey, shaker = stocked
        towel = make_item(name="Gym Towel", quantity=10, price=9.5)
        commit = ledger.decrement
        calls = []

        def _member_keeps_shopping(*args, **kwargs):
            if not calls:
                current_domain.process(AddToCart(member_id="member-1", item_id=str(towel.id), quantity=2), asynchronous=False)
                current_domain.process(AddToCart(member_id="member-1", item_id=str(whey.id), quantity=1), asynchronous=False)
            calls.append(args)
            return commit(*args, **kwargs)

        monkeypatch.setattr(ledger, "decrement", _member_keeps_shopping)
        order = saga.run("member-1")

        assert {str(line.item_id): line.quantity for line in order.items} == {str(whey.id): 2, str(shaker.id): 3}
        remaining = {str(line.item_id): line.quantity for line in load_cart("member-1").items}
        assert remaining == {str(towel.id): 2, str(whey.id): 1}
