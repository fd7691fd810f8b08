"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from store.domain import store


@store.event(part_of="Order")
class OrderPlaced:
    """Checkout produced an order. Stock for every line is already decremented."""

    __version__ = 1

    order_id = Identifier(required=True)
    member_id = Identifier(required=True)
    checkout_id = Identifier(required=True)
    item_count = Integer(required=True)
    total_price = Float(required=True)
    placed_at = DateTime(required=True)


@store.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    member_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)
