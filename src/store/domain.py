"""Store bounded context: stock ledger, carts, checkout and low-stock alerts.

Handles the on-hand quantity of every sellable item (ledger-backed), member
carts (CQRS), the checkout saga that turns a cart into an order, and the
edge-triggered low-stock monitor that watches ledger mutations.
"""

import structlog
from protean.domain import Domain

store = Domain(name="store")

logger = structlog.get_logger(__name__)
