"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state. State tracks entity IDs
returned by creation endpoints so follow-up operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class ItemState:
    """Tracks state for a single stock item lifecycle."""

    item_id: str | None = None
    expected_quantity: int = 0


@dataclass
class MemberState:
    """Tracks a simulated member's cart and orders."""

    member_id: str | None = None
    item_ids: list[str] = field(default_factory=list)
    order_ids: list[str] = field(default_factory=list)
    idempotency_key: str | None = None
