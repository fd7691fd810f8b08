"""Stock movements: commands and handler.

Each command changes one item's quantity and appends the matching ledger
entry in a single unit of work. Callers go through ``StockLedger`` which
holds the item lock around the call; nothing else should process these
commands directly.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from store.domain import store
from store.stock.entry import LedgerEntry, Reason
from store.stock.item import StockItem, load_item


@store.command(part_of="StockItem")
class DecrementStock:
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reason = String(required=True, choices=Reason)
    performed_by = String(required=True, max_length=255)
    reference_id = Identifier()
    notes = String(max_length=500)


@store.command(part_of="StockItem")
class IncrementStock:
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reason = String(required=True, choices=Reason)
    performed_by = String(required=True, max_length=255)
    reference_id = Identifier()
    notes = String(max_length=500)


@store.command_handler(part_of=StockItem)
class StockMovementHandler:
    @handle(DecrementStock)
    def decrement_stock(self, command):
        item = load_item(command.item_id)
        entry = item.take(
            quantity=command.quantity,
            reason=command.reason,
            performed_by=command.performed_by,
            reference_id=command.reference_id,
            notes=command.notes,
        )
        current_domain.repository_for(StockItem).add(item)
        current_domain.repository_for(LedgerEntry).add(entry)
        return entry

    @handle(IncrementStock)
    def increment_stock(self, command):
        item = load_item(command.item_id)
        entry = item.put(
            quantity=command.quantity,
            reason=command.reason,
            performed_by=command.performed_by,
            reference_id=command.reference_id,
            notes=command.notes,
        )
        current_domain.repository_for(StockItem).add(item)
        current_domain.repository_for(LedgerEntry).add(entry)
        return entry
