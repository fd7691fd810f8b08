"""StockItem aggregate: the on-hand quantity of one sellable item.

``quantity`` is only changed through ``take`` and ``put``. Each call bumps
``ledger_sequence`` and hands back the LedgerEntry that journals the change,
so the caller persists both in the same unit of work. Replaying the journal
from ``opening_quantity`` must always land on ``quantity``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from store.domain import store
from store.errors import InsufficientStockError, ItemNotFoundError
from store.settings import settings
from store.stock.entry import Direction, LedgerEntry, Reason, reason_allows
from store.stock.events import (
    ItemDetailsUpdated,
    ItemRegistered,
    StockDecremented,
    StockIncremented,
)


class ItemCategory(Enum):
    SUPPLEMENTS = "supplements"
    EQUIPMENT = "equipment"
    APPAREL = "apparel"
    ACCESSORIES = "accessories"
    OTHER = "other"


@store.aggregate
class StockItem:
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=0, default=0)
    low_stock_threshold = Integer(min_value=0, default=5)
    price = Float(min_value=0.0, default=0.0)
    supplier_id = Identifier()
    category = String(choices=ItemCategory, default=ItemCategory.OTHER.value)
    opening_quantity = Integer(min_value=0, default=0)
    ledger_sequence = Integer(min_value=0, default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def quantity_must_not_be_negative(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError({"quantity": ["Stock quantity cannot go below zero"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        name,
        quantity=0,
        low_stock_threshold=None,
        price=0.0,
        supplier_id=None,
        category=None,
        item_id=None,
    ):
        now = datetime.now(UTC)
        threshold = settings.default_low_stock_threshold if low_stock_threshold is None else low_stock_threshold
        values = dict(
            name=name,
            quantity=quantity,
            opening_quantity=quantity,
            low_stock_threshold=threshold,
            price=price,
            supplier_id=supplier_id,
            category=category or ItemCategory.OTHER.value,
            ledger_sequence=0,
            created_at=now,
            updated_at=now,
        )
        if item_id:
            values["id"] = item_id
        item = cls(**values)

        item.raise_(
            ItemRegistered(
                item_id=str(item.id),
                name=item.name,
                opening_quantity=item.opening_quantity,
                low_stock_threshold=item.low_stock_threshold,
                price=item.price,
                registered_at=now,
            )
        )
        return item

    # -------------------------------------------------------------------
    # Catalog details
    # -------------------------------------------------------------------
    def update_details(self, name=None, price=None, low_stock_threshold=None, supplier_id=None, category=None):
        """Edit descriptive fields. Quantity is deliberately not editable here."""
        if name is not None:
            self.name = name
        if price is not None:
            self.price = price
        if low_stock_threshold is not None:
            self.low_stock_threshold = low_stock_threshold
        if supplier_id is not None:
            self.supplier_id = supplier_id
        if category is not None:
            self.category = category

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            ItemDetailsUpdated(
                item_id=str(self.id),
                name=self.name,
                price=self.price,
                low_stock_threshold=self.low_stock_threshold,
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def take(self, quantity, reason, performed_by, reference_id=None, notes=None) -> LedgerEntry:
        """Remove ``quantity`` units and return the OUT entry journaling it."""
        self._check_movement(quantity, reason, Direction.OUT)
        if quantity > self.quantity:
            raise InsufficientStockError(self.id, available=self.quantity, requested=quantity)

        entry = self._journal(Direction.OUT, quantity, reason, performed_by, reference_id, notes)
        self.raise_(
            StockDecremented(
                item_id=str(self.id),
                entry_id=str(entry.id),
                quantity=quantity,
                reason=entry.reason,
                previous_stock=entry.previous_stock,
                new_stock=entry.new_stock,
                reference_id=entry.reference_id,
                occurred_at=entry.created_at,
            )
        )
        return entry

    def put(self, quantity, reason, performed_by, reference_id=None, notes=None) -> LedgerEntry:
        """Add ``quantity`` units and return the IN entry journaling it."""
        self._check_movement(quantity, reason, Direction.IN)

        entry = self._journal(Direction.IN, quantity, reason, performed_by, reference_id, notes)
        self.raise_(
            StockIncremented(
                item_id=str(self.id),
                entry_id=str(entry.id),
                quantity=quantity,
                reason=entry.reason,
                previous_stock=entry.previous_stock,
                new_stock=entry.new_stock,
                reference_id=entry.reference_id,
                occurred_at=entry.created_at,
            )
        )
        return entry

    def _check_movement(self, quantity, reason, direction):
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
        if not reason_allows(reason, direction):
            raise ValidationError({"reason": [f"{Reason(reason).value} cannot be recorded as {direction.value}"]})

    def _journal(self, direction, quantity, reason, performed_by, reference_id, notes) -> LedgerEntry:
        previous = self.quantity
        new = previous + quantity if direction == Direction.IN else previous - quantity

        self.quantity = new
        self.ledger_sequence = (self.ledger_sequence or 0) + 1
        self.updated_at = datetime.now(UTC)

        return LedgerEntry.record(
            item_id=self.id,
            direction=direction,
            quantity=quantity,
            reason=reason,
            previous_stock=previous,
            new_stock=new,
            performed_by=performed_by,
            sequence=self.ledger_sequence,
            reference_id=reference_id,
            notes=notes,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_low(self) -> bool:
        """At-or-below threshold counts as low."""
        return self.quantity <= self.low_stock_threshold


def load_item(item_id) -> StockItem:
    try:
        return current_domain.repository_for(StockItem).get(str(item_id))
    except ObjectNotFoundError:
        raise ItemNotFoundError(item_id) from None
