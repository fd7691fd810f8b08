"""StockAlert aggregate: edge-triggered low-stock state for one item.

State is NORMAL or LOW. Only the NORMAL -> LOW edge produces an alert; an
item that stays LOW is silent until it climbs back above its threshold.
The aggregate shares its identity with the StockItem it watches.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String

from store.alerts.events import LowStockDetected, StockLevelRestored
from store.domain import store


class AlertState(Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"


@store.aggregate
class StockAlert:
    item_id = Identifier(required=True)
    state = String(choices=AlertState, default=AlertState.NORMAL.value)
    last_quantity = Integer()
    threshold = Integer()
    alerts_raised = Integer(default=0)
    last_alert_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def watch(cls, item_id):
        return cls(
            id=str(item_id),
            item_id=str(item_id),
            state=AlertState.NORMAL.value,
            alerts_raised=0,
            updated_at=datetime.now(UTC),
        )

    @property
    def is_low(self) -> bool:
        return self.state == AlertState.LOW.value

    def evaluate(self, quantity: int, threshold: int) -> bool:
        """Record the observed level. Returns True when this observation crossed into LOW."""
        now = datetime.now(UTC)
        self.last_quantity = quantity
        self.threshold = threshold
        self.updated_at = now

        low_now = quantity <= threshold

        if low_now and not self.is_low:
            self.state = AlertState.LOW.value
            self.alerts_raised = (self.alerts_raised or 0) + 1
            self.last_alert_at = now
            self.raise_(
                LowStockDetected(
                    item_id=str(self.item_id),
                    quantity=quantity,
                    threshold=threshold,
                    detected_at=now,
                )
            )
            return True

        if not low_now and self.is_low:
            self.state = AlertState.NORMAL.value
            self.raise_(
                StockLevelRestored(
                    item_id=str(self.item_id),
                    quantity=quantity,
                    threshold=threshold,
                    restored_at=now,
                )
            )

        return False
