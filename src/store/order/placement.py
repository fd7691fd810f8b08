"""Order placement: the checkout step that turns decremented lines into an Order.

Prices and names are read from the items at this moment and frozen into the
order lines. The order and the ORDER_CREATED transition of the checkout
record commit together.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from store.checkout.record import Checkout, load_checkout
from store.domain import store
from store.order.order import Order
from store.stock.item import load_item


@store.command(part_of="Order")
class PlaceOrder:
    checkout_id = Identifier(required=True)


@store.command_handler(part_of=Order)
class OrderPlacementHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        checkout = load_checkout(command.checkout_id)

        snapshot = []
        for item_id, quantity in checkout.line_items():
            item = load_item(item_id)
            snapshot.append((item.id, item.name, item.price, quantity))

        order = Order.place(member_id=checkout.member_id, checkout_id=checkout.id, lines=snapshot)
        checkout.order_created(order.id)

        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(Checkout).add(checkout)
        return str(order.id)
