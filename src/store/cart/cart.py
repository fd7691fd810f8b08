"""Cart aggregate: a member's staging area before checkout.

One cart per member, keyed by the member id and created on the first add.
Lines are unique per item and always hold at least one unit. Stock checks
made while filling the cart are advisory; checkout re-checks under lock.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer
from protean.utils.globals import current_domain

from store.cart.events import (
    CartCheckedOut,
    CartCleared,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
)
from store.domain import store
from store.errors import CartItemNotFoundError, CartNotFoundError


@store.entity(part_of="Cart")
class CartLine:
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@store.aggregate
class Cart:
    member_id = Identifier(required=True)
    items = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_line_per_item(self):
        item_ids = [str(line.item_id) for line in self.items]
        if len(item_ids) != len(set(item_ids)):
            raise ValidationError({"items": ["An item can appear only once in a cart"]})

    @classmethod
    def open(cls, member_id):
        now = datetime.now(UTC)
        return cls(id=str(member_id), member_id=str(member_id), created_at=now, updated_at=now)

    def line_for(self, item_id) -> CartLine | None:
        return next((line for line in self.items if str(line.item_id) == str(item_id)), None)

    def quantity_of(self, item_id) -> int:
        line = self.line_for(item_id)
        return line.quantity if line else 0

    def sorted_lines(self) -> list[CartLine]:
        return sorted(self.items, key=lambda line: str(line.item_id))

    def add_item(self, item_id, quantity):
        """Add units of an item, merging into the existing line if there is one."""
        now = datetime.now(UTC)
        line = self.line_for(item_id)

        if line:
            line.quantity += quantity
            line_quantity = line.quantity
        else:
            self.add_items(CartLine(item_id=str(item_id), quantity=quantity, added_at=now))
            line_quantity = quantity

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                member_id=str(self.member_id),
                item_id=str(item_id),
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )

    def update_item(self, item_id, quantity):
        line = self.line_for(item_id)
        if line is None:
            raise CartItemNotFoundError(self.member_id, item_id)

        previous = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemQuantityUpdated(
                member_id=str(self.member_id),
                item_id=str(item_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, item_id):
        line = self.line_for(item_id)
        if line is None:
            raise CartItemNotFoundError(self.member_id, item_id)

        self.remove_items(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(member_id=str(self.member_id), item_id=str(item_id)))

    def clear(self):
        lines = list(self.items)
        if lines:
            self.remove_items(lines)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            CartCleared(
                member_id=str(self.member_id),
                lines_cleared=len(lines),
                cleared_at=now,
            )
        )

    def check_out(self, lines, checkout_id):
        """Take the checked-out ``(item_id, quantity)`` lines off the cart.

        Only those units go: a line topped up during the checkout keeps the
        difference, and lines for other items are left alone.
        """
        for item_id, quantity in lines:
            line = self.line_for(item_id)
            if line is None:
                continue
            if line.quantity > quantity:
                line.quantity -= quantity
            else:
                self.remove_items(line)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            CartCheckedOut(
                member_id=str(self.member_id),
                checkout_id=str(checkout_id),
                lines_checked_out=len(lines),
                lines_remaining=len(self.items),
                checked_out_at=now,
            )
        )


def find_cart(member_id) -> Cart | None:
    try:
        return current_domain.repository_for(Cart).get(str(member_id))
    except ObjectNotFoundError:
        return None


def load_cart(member_id) -> Cart:
    cart = find_cart(member_id)
    if cart is None:
        raise CartNotFoundError(member_id)
    return cart
