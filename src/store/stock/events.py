"""Domain events for the StockItem aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from store.domain import store


@store.event(part_of="StockItem")
class ItemRegistered:
    """A new sellable item entered the catalog with its opening quantity."""

    __version__ = 1

    item_id = Identifier(required=True)
    name = String(required=True)
    opening_quantity = Integer(required=True)
    low_stock_threshold = Integer(required=True)
    price = Float(required=True)
    registered_at = DateTime(required=True)


@store.event(part_of="StockItem")
class ItemDetailsUpdated:
    __version__ = 1

    item_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    low_stock_threshold = Integer(required=True)
    updated_at = DateTime(required=True)


@store.event(part_of="StockItem")
class StockDecremented:
    """Units left the shelf. Paired with exactly one OUT ledger entry."""

    __version__ = 1

    item_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference_id = Identifier()
    occurred_at = DateTime(required=True)


@store.event(part_of="StockItem")
class StockIncremented:
    """Units came back onto the shelf. Paired with exactly one IN ledger entry."""

    __version__ = 1

    item_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference_id = Identifier()
    occurred_at = DateTime(required=True)
