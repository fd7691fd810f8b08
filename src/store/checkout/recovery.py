"""Checkout recovery pass.

Finds checkouts that decremented stock without producing an order:

* records stuck in DECREMENTING whose member holds no live checkout are
  flagged RECONCILIATION_REQUIRED;
* SALE ledger entries whose reference has no order are grouped per
  checkout and reported.

Findings are logged at critical level and returned. Stock is never
re-applied or given back here; that decision belongs to an operator.
"""

from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from store.checkout.record import Checkout, CheckoutStatus
from store.checkout.steps import FlagForReconciliation
from store.errors import ConcurrencyConflictError
from store.order.order import Order
from store.stock.entry import LedgerEntry, Reason
from store.utils.locks import locks, member_key
from store.utils.queries import fetch_all

logger = structlog.get_logger(__name__)


@dataclass
class RecoveryFinding:
    checkout_id: str
    member_id: str | None
    status: str | None
    movements: list[dict] = field(default_factory=list)
    detail: str = ""

    @property
    def item_ids(self) -> list[str]:
        return sorted({movement["item_id"] for movement in self.movements})


def _movement(entry) -> dict:
    return {
        "item_id": str(entry.item_id),
        "quantity": entry.quantity,
        "previous_stock": entry.previous_stock,
        "new_stock": entry.new_stock,
    }


def scan() -> list[RecoveryFinding]:
    flagged = _flag_stuck_checkouts()
    findings = _orphaned_sales(flagged)

    for finding in findings:
        logger.critical(
            "checkout_requires_reconciliation",
            checkout_id=finding.checkout_id,
            member_id=finding.member_id,
            status=finding.status,
            item_ids=finding.item_ids,
            movements=finding.movements,
            detail=finding.detail,
        )
    if not findings:
        logger.info("checkout_recovery_clean")
    return findings


def _flag_stuck_checkouts() -> set[str]:
    flagged = set()
    for record in fetch_all(Checkout, status=CheckoutStatus.DECREMENTING.value):
        try:
            with locks.hold([member_key(record.member_id)], timeout=0):
                current = current_domain.repository_for(Checkout).get(str(record.id))
                if current.status != CheckoutStatus.DECREMENTING.value:
                    continue
                current_domain.process(
                    FlagForReconciliation(checkout_id=str(record.id), reason="Found stuck in DECREMENTING"),
                    asynchronous=False,
                )
                flagged.add(str(record.id))
        except ConcurrencyConflictError:
            # The member's checkout is still running
            continue
    return flagged


def _orphaned_sales(flagged: set[str]) -> list[RecoveryFinding]:
    placed = {str(order.checkout_id) for order in fetch_all(Order)}
    records = {str(record.id): record for record in fetch_all(Checkout)}

    by_reference: dict[str, list[LedgerEntry]] = {}
    for entry in fetch_all(LedgerEntry, reason=Reason.SALE.value):
        if entry.reference_id and str(entry.reference_id) not in placed:
            by_reference.setdefault(str(entry.reference_id), []).append(entry)

    findings = []
    for reference_id, entries in sorted(by_reference.items()):
        record = records.get(reference_id)
        if record is not None and record.status == CheckoutStatus.DECREMENTING.value:
            # Live saga, skipped by the flagging pass above
            continue

        if reference_id in flagged:
            detail = "Stuck in DECREMENTING; flagged for reconciliation"
        elif record is None:
            detail = "Sale references no known checkout"
        else:
            detail = record.failure_reason or "Stock decremented without an order"

        findings.append(
            RecoveryFinding(
                checkout_id=reference_id,
                member_id=str(record.member_id) if record else None,
                status=record.status if record else None,
                movements=[
                    _movement(entry)
                    for entry in sorted(entries, key=lambda entry: (str(entry.item_id), entry.sequence))
                ],
                detail=detail,
            )
        )

    reported = {finding.checkout_id for finding in findings}
    for record_id, record in sorted(records.items()):
        if record.status != CheckoutStatus.RECONCILIATION_REQUIRED.value or record_id in reported:
            continue
        findings.append(
            RecoveryFinding(
                checkout_id=record_id,
                member_id=str(record.member_id),
                status=record.status,
                movements=[
                    _movement(entry)
                    for entry in sorted(
                        fetch_all(LedgerEntry, reference_id=record_id), key=lambda entry: (str(entry.item_id), entry.sequence)
                    )
                ],
                detail=record.failure_reason or "Flagged for reconciliation",
            )
        )
    return findings
