"""Checkout saga steps: commands and handler.

Each step is its own unit of work, so every transition of the record is
durable before the saga moves on. The steps that touch other aggregates
(order placement, cart clearing) change them in the same unit of work as
the record, so a crash leaves the record describing exactly what committed.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from store.cart.cart import Cart, find_cart
from store.checkout.record import Checkout, load_checkout
from store.domain import store


@store.command(part_of="Checkout")
class BeginCheckout:
    member_id = Identifier(required=True)
    lines = Text(required=True)  # JSON [[item_id, quantity], ...]
    idempotency_key = String(max_length=255)


@store.command(part_of="Checkout")
class MarkDecrementing:
    checkout_id = Identifier(required=True)


@store.command(part_of="Checkout")
class ClearCheckedOutCart:
    checkout_id = Identifier(required=True)


@store.command(part_of="Checkout")
class FinishCheckout:
    checkout_id = Identifier(required=True)


@store.command(part_of="Checkout")
class AbortCheckout:
    checkout_id = Identifier(required=True)
    reason = Text(required=True)


@store.command(part_of="Checkout")
class FlagForReconciliation:
    checkout_id = Identifier(required=True)
    reason = Text(required=True)


@store.command_handler(part_of=Checkout)
class CheckoutStepsHandler:
    @handle(BeginCheckout)
    def begin_checkout(self, command):
        checkout = Checkout.start(
            member_id=command.member_id,
            lines=[tuple(line) for line in json.loads(command.lines)],
            idempotency_key=command.idempotency_key,
        )
        current_domain.repository_for(Checkout).add(checkout)
        return str(checkout.id)

    @handle(MarkDecrementing)
    def mark_decrementing(self, command):
        checkout = load_checkout(command.checkout_id)
        checkout.begin_decrementing()
        current_domain.repository_for(Checkout).add(checkout)

    @handle(ClearCheckedOutCart)
    def clear_checked_out_cart(self, command):
        checkout = load_checkout(command.checkout_id)

        cart = find_cart(checkout.member_id)
        if cart is not None:
            cart.check_out(checkout.line_items(), checkout_id=checkout.id)
            current_domain.repository_for(Cart).add(cart)

        checkout.cart_cleared()
        current_domain.repository_for(Checkout).add(checkout)

    @handle(FinishCheckout)
    def finish_checkout(self, command):
        checkout = load_checkout(command.checkout_id)
        checkout.finish()
        current_domain.repository_for(Checkout).add(checkout)

    @handle(AbortCheckout)
    def abort_checkout(self, command):
        checkout = load_checkout(command.checkout_id)
        checkout.abort(command.reason)
        current_domain.repository_for(Checkout).add(checkout)

    @handle(FlagForReconciliation)
    def flag_for_reconciliation(self, command):
        checkout = load_checkout(command.checkout_id)
        checkout.require_reconciliation(command.reason)
        current_domain.repository_for(Checkout).add(checkout)
