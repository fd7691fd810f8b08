"""Application tests for the Stock Ledger."""

import pytest
from protean import atomic_change, current_domain
from store.alerts.monitor import monitor
from store.errors import InsufficientStockError, ItemNotFoundError
from store.stock.entry import Direction, LedgerEntry, Reason
from store.stock.item import StockItem, load_item
from store.stock.ledger import ledger
from store.utils.queries import fetch_all


class TestDecrement:
    def test_decrement_persists_item_and_entry(self, make_item):
        item = make_item(quantity=10)
        entry = ledger.decrement(item.id, 3, Reason.SALE, performed_by="member-1", reference_id="chk-1")

        assert load_item(item.id).quantity == 7
        stored = current_domain.repository_for(LedgerEntry).get(str(entry.id))
        assert stored.previous_stock == 10
        assert stored.new_stock == 7
        assert stored.reason == "SALE"
        assert str(stored.reference_id) == "chk-1"

    def test_insufficient_stock_leaves_no_trace(self, make_item):
        item = make_item(quantity=2)
        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.decrement(item.id, 5, Reason.SALE, performed_by="member-1")

        assert exc_info.value.available == 2
        assert exc_info.value.requested == 5
        assert load_item(item.id).quantity == 2
        assert fetch_all(LedgerEntry, item_id=str(item.id)) == []

    def test_unknown_item(self):
        with pytest.raises(ItemNotFoundError):
            ledger.decrement("item-404", 1, Reason.SALE, performed_by="member-1")

    def test_string_reason_accepted(self, make_item):
        item = make_item(quantity=4)
        entry = ledger.decrement(item.id, 1, "DAMAGE", performed_by="staff-1", notes="Torn packaging")
        assert entry.reason == "DAMAGE"
        assert entry.notes == "Torn packaging"


class TestIncrement:
    def test_increment_persists_item_and_entry(self, make_item):
        item = make_item(quantity=1)
        entry = ledger.increment(item.id, 9, Reason.PURCHASE, performed_by="staff-1")

        assert load_item(item.id).quantity == 10
        assert entry.direction == Direction.IN.value
        assert entry.sequence == 1

    def test_unknown_item(self):
        with pytest.raises(ItemNotFoundError):
            ledger.increment("item-404", 1, Reason.PURCHASE, performed_by="staff-1")


class TestQueries:
    def _exercise(self, item):
        ledger.decrement(item.id, 2, Reason.SALE, performed_by="member-1")
        ledger.increment(item.id, 5, Reason.PURCHASE, performed_by="staff-1")
        ledger.decrement(item.id, 1, Reason.DAMAGE, performed_by="staff-1")
        ledger.decrement(item.id, 1, Reason.SALE, performed_by="member-2")

    def test_history_is_in_sequence_order(self, make_item):
        item = make_item(quantity=10)
        self._exercise(item)
        assert [entry.sequence for entry in ledger.history(item.id)] == [1, 2, 3, 4]

    def test_history_filters(self, make_item):
        item = make_item(quantity=10)
        self._exercise(item)
        assert len(ledger.history(item.id, direction=Direction.OUT)) == 3
        assert [e.sequence for e in ledger.history(item.id, reason=Reason.SALE)] == [1, 4]

    def test_summary(self, make_item):
        item = make_item(quantity=10)
        self._exercise(item)
        summary = ledger.summary(item.id)

        assert summary.current_quantity == 11
        assert summary.opening_quantity == 10
        assert summary.total_in == 5
        assert summary.total_out == 4
        assert summary.entry_count == 4
        assert summary.by_reason == {"SALE": 3, "PURCHASE": 5, "DAMAGE": 1}

    def test_entries_for_reference(self, make_item):
        first = make_item(name="Creatine 500g", quantity=5)
        second = make_item(name="Lifting Straps", quantity=5)
        ledger.decrement(first.id, 1, Reason.SALE, performed_by="m", reference_id="chk-9")
        ledger.decrement(second.id, 2, Reason.SALE, performed_by="m", reference_id="chk-9")
        ledger.decrement(second.id, 1, Reason.SALE, performed_by="m", reference_id="chk-10")

        assert len(ledger.entries_for_reference("chk-9")) == 2


class TestReconcile:
    def test_consistent_ledger(self, make_item):
        item = make_item(quantity=10)
        ledger.decrement(item.id, 4, Reason.SALE, performed_by="m")
        ledger.increment(item.id, 2, Reason.RETURN, performed_by="m")

        report = ledger.reconcile(item.id)
        assert report.consistent
        assert report.replayed_quantity == 8
        assert report.recorded_quantity == 8

    def test_quantity_changed_outside_the_ledger_is_detected(self, make_item):
        item = make_item(quantity=10)
        ledger.decrement(item.id, 4, Reason.SALE, performed_by="m")

        tampered = load_item(item.id)
        tampered.quantity = 9
        current_domain.repository_for(StockItem).add(tampered)

        report = ledger.reconcile(item.id)
        assert not report.consistent
        assert report.replayed_quantity == 6
        assert report.recorded_quantity == 9

    def test_reconcile_all(self, make_item):
        make_item(name="Creatine 500g", quantity=5)
        make_item(name="Lifting Straps", quantity=5)
        reports = ledger.reconcile_all()
        assert len(reports) == 2
        assert all(report.consistent for report in reports)

    def test_quantity_equals_opening_plus_deltas(self, make_item):
        item = make_item(quantity=12)
        for _ in range(5):
            ledger.decrement(item.id, 2, Reason.SALE, performed_by="m")
        ledger.increment(item.id, 3, Reason.ADJUSTMENT, performed_by="s")

        entries = ledger.history(item.id)
        assert load_item(item.id).quantity == item.opening_quantity + sum(e.delta for e in entries)

    def test_broken_chain_still_replays_opening_plus_deltas(self, make_item):
        item = make_item(quantity=10)
        ledger.decrement(item.id, 2, Reason.SALE, performed_by="m")
        second = ledger.decrement(item.id, 3, Reason.SALE, performed_by="m")

        # Entry 2 claims to start from 7 instead of 8
        tampered = current_domain.repository_for(LedgerEntry).get(str(second.id))
        with atomic_change(tampered):
            tampered.previous_stock = 7
            tampered.new_stock = 4
        current_domain.repository_for(LedgerEntry).add(tampered)

        report = ledger.reconcile(item.id)
        assert report.replayed_quantity == 5
        assert report.recorded_quantity == 5
        assert report.problems == ["entry 2 starts at 7, chain is at 8"]


class TestMonitorFailure:
    def test_committed_movement_survives_a_failing_monitor(self, make_item, monkeypatch):
        item = make_item(quantity=10, low_stock_threshold=3)

        def _broken(item_id):
            raise RuntimeError("alert store unavailable")

        monkeypatch.setattr(monitor, "observe", _broken)
        entry = ledger.decrement(item.id, 8, Reason.SALE, performed_by="m", reference_id="chk-1")

        assert entry.new_stock == 2
        assert load_item(item.id).quantity == 2
        assert [e.id for e in ledger.entries_for_reference("chk-1")] == [entry.id]
