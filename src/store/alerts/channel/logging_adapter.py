"""Default alert channel: writes alerts to the structured log."""

from uuid import uuid4

import structlog

from store.alerts.channel.port import AlertChannel, DeliveryResult, LowStockAlert, LowStockDigest

logger = structlog.get_logger(__name__)


class LoggingAlertChannel(AlertChannel):
    def send_alert(self, alert: LowStockAlert, recipients: list[str]) -> DeliveryResult:
        message_id = f"alert-{uuid4().hex[:12]}"
        logger.warning(
            "low_stock_alert",
            message_id=message_id,
            item_id=alert.item_id,
            item_name=alert.item_name,
            quantity=alert.quantity,
            threshold=alert.threshold,
            recipients=recipients,
        )
        return DeliveryResult(success=True, message_id=message_id)

    def send_digest(self, digest: LowStockDigest) -> DeliveryResult:
        message_id = f"digest-{uuid4().hex[:12]}"
        logger.warning(
            "low_stock_digest",
            message_id=message_id,
            item_count=len(digest.items),
            item_ids=[alert.item_id for alert in digest.items],
            recipients=list(digest.recipients),
        )
        return DeliveryResult(success=True, message_id=message_id)
