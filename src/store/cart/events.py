"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer

from store.domain import store


@store.event(part_of="Cart")
class CartItemAdded:
    __version__ = 1

    member_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)


@store.event(part_of="Cart")
class CartItemQuantityUpdated:
    __version__ = 1

    member_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@store.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    member_id = Identifier(required=True)
    item_id = Identifier(required=True)


@store.event(part_of="Cart")
class CartCleared:
    """All lines dropped by the member."""

    __version__ = 1

    member_id = Identifier(required=True)
    lines_cleared = Integer(required=True)
    cleared_at = DateTime(required=True)


@store.event(part_of="Cart")
class CartCheckedOut:
    """Checked-out units taken off the cart; lines added meanwhile stay."""

    __version__ = 1

    member_id = Identifier(required=True)
    checkout_id = Identifier(required=True)
    lines_checked_out = Integer(required=True)
    lines_remaining = Integer(required=True)
    checked_out_at = DateTime(required=True)
