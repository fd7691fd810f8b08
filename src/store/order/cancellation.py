"""Order cancellation: command, handler and the restocking service.

Every line goes back to stock through the ledger with reason RETURN,
referencing the order, and only then does the order flip to ``cancelled``.
The RETURN entries double as progress: if a restock fails partway the order
stays open and a retry returns only what is still outstanding. The order
lock keeps two cancellations of the same order from both restocking.
"""

from collections import Counter

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from store.domain import store
from store.order.order import Order, load_order
from store.stock.entry import Reason
from store.stock.ledger import ledger
from store.utils.locks import item_key, locks, order_key

logger = structlog.get_logger(__name__)


@store.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@store.command_handler(part_of=Order)
class OrderCancellationHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id)
        order.cancel(reason=command.reason)
        current_domain.repository_for(Order).add(order)


def cancel_order(order_id, performed_by, reason=None) -> Order:
    order = load_order(order_id)
    keys = [order_key(order.id)] + [item_key(line.item_id) for line in order.items]

    with locks.hold(keys):
        order = load_order(order.id)
        order.ensure_cancellable()

        # RETURN entries already referencing the order come from an earlier attempt
        returned = Counter()
        for entry in ledger.entries_for_reference(order.id):
            if entry.reason == Reason.RETURN.value:
                returned[str(entry.item_id)] += entry.quantity

        for line in sorted(order.items, key=lambda line: str(line.item_id)):
            outstanding = line.quantity - returned[str(line.item_id)]
            if outstanding <= 0:
                continue
            ledger.increment(
                line.item_id,
                outstanding,
                Reason.RETURN,
                performed_by=performed_by,
                reference_id=order.id,
                notes=f"Cancellation of order {order.id}",
            )

        current_domain.process(CancelOrder(order_id=str(order.id), reason=reason), asynchronous=False)

    logger.info(
        "order_cancelled",
        order_id=str(order.id),
        member_id=str(order.member_id),
        lines=len(order.items),
        resumed=bool(returned),
    )
    return load_order(order.id)
