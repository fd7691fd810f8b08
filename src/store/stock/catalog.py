"""Catalog service: item registration and detail edits.

Edits take the same per-item lock as the ledger, and a threshold change is
re-evaluated by the low-stock monitor straight away.
"""

from protean.utils.globals import current_domain

from store.alerts.monitor import monitor
from store.stock.item import StockItem, load_item
from store.stock.registration import RegisterItem, UpdateItemDetails
from store.utils.locks import item_key, locks


def register_item(name, quantity=0, low_stock_threshold=None, price=0.0, supplier_id=None, category=None, item_id=None):
    item_id = current_domain.process(
        RegisterItem(
            item_id=item_id,
            name=name,
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            price=price,
            supplier_id=supplier_id,
            category=category,
        ),
        asynchronous=False,
    )
    monitor.observe(item_id)
    return load_item(item_id)


def update_item(item_id, **changes) -> StockItem:
    with locks.hold([item_key(item_id)]):
        current_domain.process(UpdateItemDetails(item_id=str(item_id), **changes), asynchronous=False)
        monitor.observe(item_id)
        return load_item(item_id)
