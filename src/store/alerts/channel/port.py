"""Alert channel port.

The low-stock monitor hands finished alerts to whatever adapter is active.
Adapters deliver them (email, SMS, a log line, an in-memory list) and report
back with a ``DeliveryResult``. A failed delivery is logged by the monitor and
never rolls back stock.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class LowStockAlert:
    """One item just crossed into LOW."""

    item_id: str
    item_name: str
    quantity: int
    threshold: int
    raised_at: datetime


@dataclass(frozen=True)
class LowStockDigest:
    """Every item that is LOW at sweep time, sent as one message."""

    items: tuple[LowStockAlert, ...]
    generated_at: datetime
    recipients: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: str | None = None
    failure_reason: str | None = None


class AlertChannel(ABC):
    @abstractmethod
    def send_alert(self, alert: LowStockAlert, recipients: list[str]) -> DeliveryResult: ...

    @abstractmethod
    def send_digest(self, digest: LowStockDigest) -> DeliveryResult: ...
