"""Checkout aggregate: the persisted state of one checkout saga.

    START -> VALIDATING -> DECREMENTING -> ORDER_CREATED -> CART_CLEARED -> DONE

ABORTED is reachable from VALIDATING and DECREMENTING as long as no stock
was committed. RECONCILIATION_REQUIRED is the terminal state for a saga
that decremented stock but could not finish; an operator must look at it.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from store.checkout.events import (
    CheckoutAborted,
    CheckoutCompleted,
    CheckoutReconciliationRequired,
    CheckoutStarted,
)
from store.domain import store
from store.errors import InvalidOperationError, NotFoundError
from store.utils.queries import fetch_all


class CheckoutStatus(Enum):
    START = "START"
    VALIDATING = "VALIDATING"
    DECREMENTING = "DECREMENTING"
    ORDER_CREATED = "ORDER_CREATED"
    CART_CLEARED = "CART_CLEARED"
    DONE = "DONE"
    ABORTED = "ABORTED"
    RECONCILIATION_REQUIRED = "RECONCILIATION_REQUIRED"


_VALID_TRANSITIONS = {
    CheckoutStatus.START: {CheckoutStatus.VALIDATING},
    CheckoutStatus.VALIDATING: {CheckoutStatus.DECREMENTING, CheckoutStatus.ABORTED},
    CheckoutStatus.DECREMENTING: {
        CheckoutStatus.ORDER_CREATED,
        CheckoutStatus.ABORTED,
        CheckoutStatus.RECONCILIATION_REQUIRED,
    },
    CheckoutStatus.ORDER_CREATED: {CheckoutStatus.CART_CLEARED, CheckoutStatus.RECONCILIATION_REQUIRED},
    CheckoutStatus.CART_CLEARED: {CheckoutStatus.DONE, CheckoutStatus.RECONCILIATION_REQUIRED},
    CheckoutStatus.DONE: set(),  # Terminal
    CheckoutStatus.ABORTED: set(),  # Terminal
    CheckoutStatus.RECONCILIATION_REQUIRED: set(),  # Terminal
}


@store.aggregate
class Checkout:
    member_id = Identifier(required=True)
    idempotency_key = String(max_length=255)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.START.value)
    lines = Text()  # JSON [{"item_id", "quantity"}] sorted by item_id
    order_id = Identifier()
    failure_reason = Text()
    history = Text()  # JSON [{"status", "at"}]
    started_at = DateTime()
    completed_at = DateTime()

    @classmethod
    def start(cls, member_id, lines, idempotency_key=None):
        now = datetime.now(UTC)
        snapshot = sorted(
            ({"item_id": str(item_id), "quantity": quantity} for item_id, quantity in lines),
            key=lambda line: line["item_id"],
        )
        checkout = cls(
            member_id=str(member_id),
            idempotency_key=idempotency_key,
            status=CheckoutStatus.START.value,
            lines=json.dumps(snapshot),
            history=json.dumps([{"status": CheckoutStatus.START.value, "at": now.isoformat()}]),
            started_at=now,
        )
        checkout._transition_to(CheckoutStatus.VALIDATING)
        checkout.raise_(
            CheckoutStarted(
                checkout_id=str(checkout.id),
                member_id=checkout.member_id,
                idempotency_key=idempotency_key,
                started_at=now,
            )
        )
        return checkout

    # -------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> CheckoutStatus:
        return CheckoutStatus(self.status)

    def line_items(self) -> list[tuple[str, int]]:
        return [(line["item_id"], line["quantity"]) for line in json.loads(self.lines or "[]")]

    def transitions(self) -> list[dict]:
        return json.loads(self.history or "[]")

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def begin_decrementing(self):
        self._transition_to(CheckoutStatus.DECREMENTING)

    def order_created(self, order_id):
        self._transition_to(CheckoutStatus.ORDER_CREATED)
        self.order_id = str(order_id)

    def cart_cleared(self):
        self._transition_to(CheckoutStatus.CART_CLEARED)

    def finish(self):
        self._transition_to(CheckoutStatus.DONE)
        self.completed_at = datetime.now(UTC)
        self.raise_(
            CheckoutCompleted(
                checkout_id=str(self.id),
                member_id=str(self.member_id),
                order_id=str(self.order_id),
                completed_at=self.completed_at,
            )
        )

    def abort(self, reason):
        self._transition_to(CheckoutStatus.ABORTED)
        self.failure_reason = reason
        self.completed_at = datetime.now(UTC)
        self.raise_(
            CheckoutAborted(
                checkout_id=str(self.id),
                member_id=str(self.member_id),
                reason=reason,
                aborted_at=self.completed_at,
            )
        )

    def require_reconciliation(self, reason):
        self._transition_to(CheckoutStatus.RECONCILIATION_REQUIRED)
        self.failure_reason = reason
        now = datetime.now(UTC)
        self.raise_(
            CheckoutReconciliationRequired(
                checkout_id=str(self.id),
                member_id=str(self.member_id),
                reason=reason,
                flagged_at=now,
            )
        )

    def _transition_to(self, target):
        current = self.current_status
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidOperationError(
                f"Checkout {self.id} cannot move from {current.value} to {target.value}",
                checkout_id=str(self.id),
                status=current.value,
            )
        history = self.transitions()
        history.append({"status": target.value, "at": datetime.now(UTC).isoformat()})
        self.history = json.dumps(history)
        self.status = target.value


def load_checkout(checkout_id) -> Checkout:
    try:
        return current_domain.repository_for(Checkout).get(str(checkout_id))
    except ObjectNotFoundError:
        raise NotFoundError(f"Checkout {checkout_id} not found", checkout_id=str(checkout_id)) from None


def find_by_idempotency_key(member_id, idempotency_key) -> Checkout | None:
    """Latest non-aborted checkout the member ran under this key."""
    records = [
        record
        for record in fetch_all(Checkout, member_id=str(member_id), idempotency_key=idempotency_key)
        if record.status != CheckoutStatus.ABORTED.value
    ]
    if not records:
        return None
    return max(records, key=lambda record: record.started_at)
