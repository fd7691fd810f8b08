"""LedgerEntry aggregate: one immutable line in an item's stock journal.

Entries are only ever created by ``StockItem.take`` / ``StockItem.put`` inside
the same unit of work that changes the item's quantity. They are never
updated or deleted; corrections are new entries with reason ADJUSTMENT.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from store.domain import store


class Direction(Enum):
    IN = "IN"
    OUT = "OUT"


class Reason(Enum):
    SALE = "SALE"
    PURCHASE = "PURCHASE"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"
    DAMAGE = "DAMAGE"
    EXPIRED = "EXPIRED"


# Which directions a reason may be recorded with
_ALLOWED_DIRECTIONS = {
    Reason.SALE: {Direction.OUT},
    Reason.DAMAGE: {Direction.OUT},
    Reason.EXPIRED: {Direction.OUT},
    Reason.PURCHASE: {Direction.IN},
    Reason.RETURN: {Direction.IN},
    Reason.ADJUSTMENT: {Direction.IN, Direction.OUT},
}


def reason_allows(reason, direction) -> bool:
    return Direction(direction) in _ALLOWED_DIRECTIONS[Reason(reason)]


@store.aggregate
class LedgerEntry:
    item_id = Identifier(required=True)
    direction = String(required=True, choices=Direction)
    quantity = Integer(required=True, min_value=1)
    reason = String(required=True, choices=Reason)
    previous_stock = Integer(required=True, min_value=0)
    new_stock = Integer(required=True, min_value=0)
    performed_by = String(required=True, max_length=255)
    reference_id = Identifier()
    notes = String(max_length=500)
    sequence = Integer(required=True, min_value=1)
    created_at = DateTime()

    @invariant.post
    def new_stock_must_bracket_the_change(self):
        if self.new_stock != self.previous_stock + self.delta:
            raise ValidationError({"new_stock": ["New stock must equal previous stock plus the signed quantity"]})

    @invariant.post
    def reason_must_match_direction(self):
        if not reason_allows(self.reason, self.direction):
            raise ValidationError({"reason": [f"{self.reason} cannot be recorded as {self.direction}"]})

    @classmethod
    def record(
        cls,
        item_id,
        direction,
        quantity,
        reason,
        previous_stock,
        new_stock,
        performed_by,
        sequence,
        reference_id=None,
        notes=None,
    ):
        return cls(
            item_id=str(item_id),
            direction=Direction(direction).value,
            quantity=quantity,
            reason=Reason(reason).value,
            previous_stock=previous_stock,
            new_stock=new_stock,
            performed_by=performed_by,
            reference_id=str(reference_id) if reference_id else None,
            notes=notes,
            sequence=sequence,
            created_at=datetime.now(UTC),
        )

    @property
    def delta(self) -> int:
        """Signed change this entry made to the item's quantity."""
        return self.quantity if self.direction == Direction.IN.value else -self.quantity
