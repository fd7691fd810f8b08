"""Order aggregate: the immutable result of a successful checkout.

Lines are a snapshot of each item's name and price at checkout time, so
later catalog edits never change a past order. Only the status moves after
creation.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String
from protean.utils.globals import current_domain

from store.domain import store
from store.errors import InvalidOperationError, OrderNotFoundError
from store.order.events import OrderCancelled, OrderPlaced


class OrderStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: {OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: set(),  # Terminal
}


@store.entity(part_of="Order")
class OrderLine:
    item_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


@store.aggregate
class Order:
    member_id = Identifier(required=True)
    checkout_id = Identifier(required=True)
    items = HasMany(OrderLine)
    total_price = Float(min_value=0.0, default=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    cancelled_at = DateTime()

    @classmethod
    def place(cls, member_id, checkout_id, lines):
        """Build a completed order from ``(item_id, name, price, quantity)`` snapshots."""
        now = datetime.now(UTC)
        order_lines = [
            OrderLine(item_id=str(item_id), name=name, price=price, quantity=quantity)
            for item_id, name, price, quantity in lines
        ]
        order = cls(
            member_id=str(member_id),
            checkout_id=str(checkout_id),
            total_price=round(sum(line.price * line.quantity for line in order_lines), 2),
            status=OrderStatus.COMPLETED.value,
            created_at=now,
        )
        order.add_items(order_lines)
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                member_id=order.member_id,
                checkout_id=order.checkout_id,
                item_count=len(order_lines),
                total_price=order.total_price,
                placed_at=now,
            )
        )
        return order

    def ensure_cancellable(self):
        self._assert_can_transition(OrderStatus.CANCELLED)

    def cancel(self, reason=None):
        self.ensure_cancellable()

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                member_id=str(self.member_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidOperationError(
                f"Cannot move order {self.id} from {current.value} to {target_status.value}",
                order_id=str(self.id),
                status=current.value,
            )


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFoundError(order_id) from None
