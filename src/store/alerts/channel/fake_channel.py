"""Fake alert channel: records alerts and digests in memory for test assertions."""

from uuid import uuid4

from store.alerts.channel.port import AlertChannel, DeliveryResult, LowStockAlert, LowStockDigest


class FakeAlertChannel(AlertChannel):
    def __init__(self):
        self.alerts: list[LowStockAlert] = []
        self.digests: list[LowStockDigest] = []
        self.should_succeed = True
        self.failure_reason = "Alert delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Alert delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send_alert(self, alert: LowStockAlert, recipients: list[str]) -> DeliveryResult:
        if not self.should_succeed:
            return DeliveryResult(success=False, failure_reason=self.failure_reason)
        self.alerts.append(alert)
        return DeliveryResult(success=True, message_id=f"alert-{uuid4().hex[:12]}")

    def send_digest(self, digest: LowStockDigest) -> DeliveryResult:
        if not self.should_succeed:
            return DeliveryResult(success=False, failure_reason=self.failure_reason)
        self.digests.append(digest)
        return DeliveryResult(success=True, message_id=f"digest-{uuid4().hex[:12]}")

    def alerts_for(self, item_id) -> list[LowStockAlert]:
        return [alert for alert in self.alerts if alert.item_id == str(item_id)]

    def reset(self):
        self.alerts.clear()
        self.digests.clear()
        self.should_succeed = True
        self.failure_reason = "Alert delivery failed"
