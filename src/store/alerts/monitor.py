"""Low-stock monitor.

``observe`` runs after every committed ledger mutation and catalog edit;
``sweep`` runs periodically (``manage.py low-stock-sweep`` or the API) and
batches every LOW item into one digest. Both evaluate under the item lock so
an evaluation never interleaves with a half-finished stock change.

Delivery is best-effort: a failing channel is logged and never undoes the
stock change that triggered it.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from store.alerts.channel import get_channel
from store.alerts.channel.port import LowStockAlert, LowStockDigest
from store.alerts.evaluation import EvaluateStockLevel
from store.settings import settings
from store.stock.item import StockItem
from store.utils.locks import item_key, locks
from store.utils.queries import fetch_all

logger = structlog.get_logger(__name__)

OUT_OF_STOCK = "OUT_OF_STOCK"
LOW_STOCK = "LOW_STOCK"


@dataclass(frozen=True)
class LowStockLine:
    item_id: str
    name: str
    category: str | None
    supplier_id: str | None
    quantity: int
    threshold: int
    shortfall: int
    status: str


@dataclass(frozen=True)
class LowStockReport:
    lines: list[LowStockLine]
    total_items: int
    critical_items: int
    low_items: int
    generated_at: datetime


class LowStockMonitor:
    def observe(self, item_id) -> LowStockAlert | None:
        """Evaluate one item now and deliver its alert if it just went LOW."""
        with locks.hold([item_key(item_id)]):
            alert = self._evaluate(item_id)

        if alert is not None:
            self._deliver(alert)
        return alert

    def sweep(self) -> LowStockDigest | None:
        """Re-evaluate every item and send one digest of everything currently LOW.

        Items that cross into LOW during the sweep are reported in the digest
        rather than alerted individually.
        """
        low: list[LowStockAlert] = []
        now = datetime.now(UTC)

        for item in fetch_all(StockItem):
            with locks.hold([item_key(item.id)]):
                self._evaluate(item.id)
                item = current_domain.repository_for(StockItem).get(str(item.id))

            if item.is_low():
                low.append(
                    LowStockAlert(
                        item_id=str(item.id),
                        item_name=item.name,
                        quantity=item.quantity,
                        threshold=item.low_stock_threshold,
                        raised_at=now,
                    )
                )

        if not low:
            logger.info("low_stock_sweep_clear")
            return None

        digest = LowStockDigest(
            items=tuple(sorted(low, key=lambda alert: (alert.quantity, alert.item_name))),
            generated_at=now,
            recipients=tuple(settings.alert_recipients),
        )
        result = get_channel().send_digest(digest)
        if result.success:
            logger.info("low_stock_digest_sent", item_count=len(digest.items), message_id=result.message_id)
        else:
            logger.error("low_stock_digest_failed", item_count=len(digest.items), reason=result.failure_reason)
        return digest

    def low_stock_items(self) -> list[StockItem]:
        """Items at or below their threshold, emptiest first."""
        items = [item for item in fetch_all(StockItem) if item.is_low()]
        return sorted(items, key=lambda item: (item.quantity, item.name))

    def report(self) -> LowStockReport:
        lines = [
            LowStockLine(
                item_id=str(item.id),
                name=item.name,
                category=item.category,
                supplier_id=str(item.supplier_id) if item.supplier_id else None,
                quantity=item.quantity,
                threshold=item.low_stock_threshold,
                shortfall=max(0, item.low_stock_threshold - item.quantity),
                status=OUT_OF_STOCK if item.quantity == 0 else LOW_STOCK,
            )
            for item in self.low_stock_items()
        ]
        critical = sum(1 for line in lines if line.status == OUT_OF_STOCK)
        return LowStockReport(
            lines=lines,
            total_items=len(lines),
            critical_items=critical,
            low_items=len(lines) - critical,
            generated_at=datetime.now(UTC),
        )

    def _evaluate(self, item_id) -> LowStockAlert | None:
        return current_domain.process(EvaluateStockLevel(item_id=str(item_id)), asynchronous=False)

    def _deliver(self, alert: LowStockAlert) -> None:
        try:
            result = get_channel().send_alert(alert, settings.alert_recipients)
        except Exception:
            logger.exception("low_stock_alert_delivery_error", item_id=alert.item_id)
            return

        if result.success:
            logger.info("low_stock_alert_sent", item_id=alert.item_id, quantity=alert.quantity, message_id=result.message_id)
        else:
            logger.error("low_stock_alert_failed", item_id=alert.item_id, reason=result.failure_reason)


monitor = LowStockMonitor()
