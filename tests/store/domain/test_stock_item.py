"""Tests for the StockItem aggregate."""

import pytest
from protean.exceptions import ValidationError
from store.errors import InsufficientStockError
from store.stock.entry import Direction, Reason
from store.stock.events import ItemRegistered, StockDecremented, StockIncremented
from store.stock.item import StockItem


def _make_item(quantity=10, threshold=3):
    item = StockItem.register(name="Resistance Band Set", quantity=quantity, low_stock_threshold=threshold, price=24.5)
    item._events.clear()
    return item


class TestRegister:
    def test_opening_quantity_matches_quantity(self):
        item = StockItem.register(name="Kettlebell 16kg", quantity=7, price=39.0)
        assert item.quantity == 7
        assert item.opening_quantity == 7
        assert item.ledger_sequence == 0

    def test_default_threshold_is_five(self):
        item = StockItem.register(name="Jump Rope", quantity=20)
        assert item.low_stock_threshold == 5

    def test_registration_raises_event(self):
        item = StockItem.register(name="Jump Rope", quantity=20)
        events = [e for e in item._events if isinstance(e, ItemRegistered)]
        assert len(events) == 1
        assert events[0].opening_quantity == 20

    def test_uses_supplied_identity(self):
        item = StockItem.register(name="Jump Rope", item_id="item-rope")
        assert str(item.id) == "item-rope"

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            StockItem.register(name="Jump Rope", quantity=-1)


class TestTake:
    def test_take_reduces_quantity_and_journals(self):
        item = _make_item(quantity=10)
        entry = item.take(4, Reason.SALE, performed_by="member-1", reference_id="chk-1")

        assert item.quantity == 6
        assert entry.direction == Direction.OUT.value
        assert entry.previous_stock == 10
        assert entry.new_stock == 6
        assert entry.sequence == 1
        assert str(entry.reference_id) == "chk-1"

    def test_take_everything_reaches_zero(self):
        item = _make_item(quantity=2)
        entry = item.take(2, Reason.SALE, performed_by="member-1")
        assert item.quantity == 0
        assert entry.new_stock == 0

    def test_take_more_than_on_hand_fails_without_change(self):
        item = _make_item(quantity=2)
        with pytest.raises(InsufficientStockError) as exc_info:
            item.take(3, Reason.SALE, performed_by="member-1")

        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert item.quantity == 2
        assert item.ledger_sequence == 0
        assert item._events == []

    def test_take_raises_event(self):
        item = _make_item()
        entry = item.take(1, Reason.DAMAGE, performed_by="staff-1")
        events = [e for e in item._events if isinstance(e, StockDecremented)]
        assert len(events) == 1
        assert events[0].entry_id == str(entry.id)
        assert events[0].reason == "DAMAGE"

    def test_in_only_reason_rejected_for_take(self):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.take(1, Reason.PURCHASE, performed_by="staff-1")

    def test_zero_quantity_rejected(self):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.take(0, Reason.SALE, performed_by="staff-1")


class TestPut:
    def test_put_increases_quantity_and_journals(self):
        item = _make_item(quantity=1)
        entry = item.put(5, Reason.PURCHASE, performed_by="staff-1", notes="Supplier delivery")

        assert item.quantity == 6
        assert entry.direction == Direction.IN.value
        assert entry.previous_stock == 1
        assert entry.new_stock == 6
        assert entry.notes == "Supplier delivery"

    def test_put_raises_event(self):
        item = _make_item()
        item.put(2, Reason.RETURN, performed_by="staff-1")
        assert any(isinstance(e, StockIncremented) for e in item._events)

    def test_out_only_reason_rejected_for_put(self):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.put(1, Reason.SALE, performed_by="staff-1")

    def test_adjustment_allowed_both_ways(self):
        item = _make_item(quantity=5)
        item.put(1, Reason.ADJUSTMENT, performed_by="staff-1")
        item.take(2, Reason.ADJUSTMENT, performed_by="staff-1")
        assert item.quantity == 4


class TestSequence:
    def test_every_movement_gets_the_next_sequence(self):
        item = _make_item(quantity=10)
        entries = [
            item.take(1, Reason.SALE, performed_by="m"),
            item.put(3, Reason.PURCHASE, performed_by="s"),
            item.take(2, Reason.EXPIRED, performed_by="s"),
        ]
        assert [e.sequence for e in entries] == [1, 2, 3]
        assert item.ledger_sequence == 3

    def test_entries_chain(self):
        item = _make_item(quantity=10)
        first = item.take(4, Reason.SALE, performed_by="m")
        second = item.put(1, Reason.RETURN, performed_by="m")
        assert second.previous_stock == first.new_stock
        assert item.opening_quantity + first.delta + second.delta == item.quantity


class TestDetailsAndLowness:
    def test_update_details_keeps_quantity(self):
        item = _make_item(quantity=10)
        item.update_details(name="Resistance Bands (5 pack)", price=29.0, low_stock_threshold=4)
        assert item.name == "Resistance Bands (5 pack)"
        assert item.price == 29.0
        assert item.low_stock_threshold == 4
        assert item.quantity == 10

    @pytest.mark.parametrize(("quantity", "threshold", "low"), [(3, 3, True), (0, 3, True), (4, 3, False)])
    def test_low_is_at_or_below_threshold(self, quantity, threshold, low):
        assert _make_item(quantity=quantity, threshold=threshold).is_low() is low
