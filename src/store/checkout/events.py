"""Domain events for the Checkout saga record."""

from protean.fields import DateTime, Identifier, String, Text

from store.domain import store


@store.event(part_of="Checkout")
class CheckoutStarted:
    __version__ = 1

    checkout_id = Identifier(required=True)
    member_id = Identifier(required=True)
    idempotency_key = String()
    started_at = DateTime(required=True)


@store.event(part_of="Checkout")
class CheckoutCompleted:
    __version__ = 1

    checkout_id = Identifier(required=True)
    member_id = Identifier(required=True)
    order_id = Identifier(required=True)
    completed_at = DateTime(required=True)


@store.event(part_of="Checkout")
class CheckoutAborted:
    """Nothing was mutated; the member may simply retry."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    member_id = Identifier(required=True)
    reason = Text(required=True)
    aborted_at = DateTime(required=True)


@store.event(part_of="Checkout")
class CheckoutReconciliationRequired:
    """Stock was decremented but the order/cart steps did not all commit."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    member_id = Identifier(required=True)
    reason = Text(required=True)
    flagged_at = DateTime(required=True)
