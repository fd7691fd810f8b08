"""Cart line management: commands and handler.

Adds and updates are checked against live stock, but nothing is reserved
and no lock is taken; the binding check happens at checkout.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from store.cart.cart import Cart, find_cart, load_cart
from store.domain import store
from store.errors import InsufficientStockError
from store.stock.item import load_item


@store.command(part_of="Cart")
class AddToCart:
    member_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@store.command(part_of="Cart")
class UpdateCartItem:
    member_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@store.command(part_of="Cart")
class RemoveFromCart:
    member_id = Identifier(required=True)
    item_id = Identifier(required=True)


@store.command(part_of="Cart")
class ClearCart:
    member_id = Identifier(required=True)


def _ensure_available(item_id, wanted):
    item = load_item(item_id)
    if wanted > item.quantity:
        raise InsufficientStockError(item.id, available=item.quantity, requested=wanted)


@store.command_handler(part_of=Cart)
class CartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = find_cart(command.member_id) or Cart.open(command.member_id)
        _ensure_available(command.item_id, cart.quantity_of(command.item_id) + command.quantity)

        cart.add_item(command.item_id, command.quantity)
        current_domain.repository_for(Cart).add(cart)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = load_cart(command.member_id)
        if cart.line_for(command.item_id) is not None:
            _ensure_available(command.item_id, command.quantity)

        cart.update_item(command.item_id, command.quantity)
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_cart(command.member_id)
        cart.remove_item(command.item_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find_cart(command.member_id) or Cart.open(command.member_id)
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
