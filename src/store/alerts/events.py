"""Domain events for the StockAlert aggregate."""

from protean.fields import DateTime, Identifier, Integer

from store.domain import store


@store.event(part_of="StockAlert")
class LowStockDetected:
    """Item crossed from NORMAL to LOW. Raised once per crossing."""

    __version__ = 1

    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime(required=True)


@store.event(part_of="StockAlert")
class StockLevelRestored:
    """Item rose back above its threshold, re-arming the alert."""

    __version__ = 1

    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    threshold = Integer(required=True)
    restored_at = DateTime(required=True)
