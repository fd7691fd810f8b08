"""Stock Ledger: the only way an item's quantity changes.

Every mutation is read-check-write-and-journal under the item's lock, in one
unit of work, and the lock is released only after the commit. Once the
change is durable the low-stock monitor observes the new level while the
lock is still held, so alerts see mutations in order. Observation is
best-effort: once the entry is committed the movement has happened.

Reads (history, summaries, reconciliation) take no locks; they see whatever
the last committed state is.
"""

from collections import Counter
from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from store.alerts.monitor import monitor
from store.errors import ValidationError
from store.stock.entry import Direction, LedgerEntry, Reason
from store.stock.item import StockItem, load_item
from store.stock.movement import DecrementStock, IncrementStock
from store.utils.locks import item_key, locks
from store.utils.queries import fetch_all

logger = structlog.get_logger(__name__)


def _reason(reason) -> str:
    try:
        return Reason(reason).value
    except ValueError:
        raise ValidationError(f"Unknown stock movement reason: {reason}", reason=str(reason)) from None


@dataclass(frozen=True)
class LedgerSummary:
    item_id: str
    current_quantity: int
    opening_quantity: int
    total_in: int
    total_out: int
    entry_count: int
    by_reason: dict[str, int]


@dataclass
class ReconciliationReport:
    item_id: str
    opening_quantity: int
    replayed_quantity: int
    recorded_quantity: int
    entry_count: int
    problems: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.problems


class StockLedger:
    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def decrement(self, item_id, quantity, reason, performed_by, reference_id=None, notes=None) -> LedgerEntry:
        command = DecrementStock(
            item_id=str(item_id),
            quantity=quantity,
            reason=_reason(reason),
            performed_by=performed_by,
            reference_id=str(reference_id) if reference_id else None,
            notes=notes,
        )
        return self._apply(command)

    def increment(self, item_id, quantity, reason, performed_by, reference_id=None, notes=None) -> LedgerEntry:
        command = IncrementStock(
            item_id=str(item_id),
            quantity=quantity,
            reason=_reason(reason),
            performed_by=performed_by,
            reference_id=str(reference_id) if reference_id else None,
            notes=notes,
        )
        return self._apply(command)

    def _apply(self, command) -> LedgerEntry:
        with locks.hold([item_key(command.item_id)]):
            entry = current_domain.process(command, asynchronous=False)
            logger.info(
                "stock_moved",
                item_id=entry.item_id,
                direction=entry.direction,
                quantity=entry.quantity,
                reason=entry.reason,
                previous_stock=entry.previous_stock,
                new_stock=entry.new_stock,
                reference_id=entry.reference_id,
                sequence=entry.sequence,
            )
            self._observe(entry)
        return entry

    def _observe(self, entry) -> None:
        # The entry is committed by now, so monitor failures are only logged
        try:
            monitor.observe(entry.item_id)
        except Exception:
            logger.exception("low_stock_observe_failed", item_id=entry.item_id, sequence=entry.sequence)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def history(self, item_id, direction=None, reason=None) -> list[LedgerEntry]:
        """Entries for one item in sequence order, optionally filtered."""
        load_item(item_id)

        filters = {"item_id": str(item_id)}
        if direction:
            filters["direction"] = Direction(direction).value
        if reason:
            filters["reason"] = Reason(reason).value
        return sorted(fetch_all(LedgerEntry, **filters), key=lambda entry: entry.sequence)

    def entries_for_reference(self, reference_id) -> list[LedgerEntry]:
        entries = fetch_all(LedgerEntry, reference_id=str(reference_id))
        return sorted(entries, key=lambda entry: (str(entry.item_id), entry.sequence))

    def summary(self, item_id) -> LedgerSummary:
        item = load_item(item_id)
        entries = self.history(item_id)

        by_reason = Counter()
        for entry in entries:
            by_reason[entry.reason] += entry.quantity

        return LedgerSummary(
            item_id=str(item.id),
            current_quantity=item.quantity,
            opening_quantity=item.opening_quantity,
            total_in=sum(e.quantity for e in entries if e.direction == Direction.IN.value),
            total_out=sum(e.quantity for e in entries if e.direction == Direction.OUT.value),
            entry_count=len(entries),
            by_reason=dict(by_reason),
        )

    def reconcile(self, item_id) -> ReconciliationReport:
        """Replay the journal from the opening quantity and compare with the live item."""
        item = load_item(item_id)
        entries = self.history(item_id)

        report = ReconciliationReport(
            item_id=str(item.id),
            opening_quantity=item.opening_quantity,
            replayed_quantity=item.opening_quantity,
            recorded_quantity=item.quantity,
            entry_count=len(entries),
        )

        running = item.opening_quantity
        for expected_sequence, entry in enumerate(entries, start=1):
            if entry.sequence != expected_sequence:
                report.problems.append(f"sequence gap: expected {expected_sequence}, found {entry.sequence}")
            if entry.previous_stock != running:
                report.problems.append(
                    f"entry {entry.sequence} starts at {entry.previous_stock}, chain is at {running}"
                )
            if entry.new_stock != entry.previous_stock + entry.delta:
                report.problems.append(
                    f"entry {entry.sequence} records {entry.new_stock}, its own delta gives {entry.previous_stock + entry.delta}"
                )
            running += entry.delta
            if running < 0:
                report.problems.append(f"entry {entry.sequence} drives stock below zero")

        report.replayed_quantity = running
        if running != item.quantity:
            report.problems.append(f"replayed quantity {running} differs from recorded quantity {item.quantity}")
        if (item.ledger_sequence or 0) != len(entries):
            report.problems.append(f"item counts {item.ledger_sequence} entries, journal holds {len(entries)}")

        if report.problems:
            logger.error("stock_reconciliation_failed", item_id=report.item_id, problems=report.problems)
        return report

    def reconcile_all(self) -> list[ReconciliationReport]:
        return [self.reconcile(item.id) for item in fetch_all(StockItem)]


ledger = StockLedger()
