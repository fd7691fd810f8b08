"""Stock level evaluation: command and handler.

Loads the item's live quantity and threshold, feeds them to its StockAlert
(created on first sight) and returns the alert to deliver, if any.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from store.alerts.alert import StockAlert
from store.alerts.channel.port import LowStockAlert
from store.domain import store
from store.stock.item import load_item


@store.command(part_of="StockAlert")
class EvaluateStockLevel:
    item_id = Identifier(required=True)


@store.command_handler(part_of=StockAlert)
class StockAlertHandler:
    @handle(EvaluateStockLevel)
    def evaluate_stock_level(self, command):
        item = load_item(command.item_id)

        repo = current_domain.repository_for(StockAlert)
        try:
            alert = repo.get(str(item.id))
        except ObjectNotFoundError:
            alert = StockAlert.watch(item.id)

        crossed = alert.evaluate(item.quantity, item.low_stock_threshold)
        repo.add(alert)

        if not crossed:
            return None
        return LowStockAlert(
            item_id=str(item.id),
            item_name=item.name,
            quantity=item.quantity,
            threshold=item.low_stock_threshold,
            raised_at=alert.last_alert_at,
        )
