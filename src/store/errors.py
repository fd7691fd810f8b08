"""Error taxonomy for the store domain.

Every error carries the HTTP status it maps to at the API boundary and a
stable ``code`` so callers can branch on the failure class without parsing
messages. ``details`` holds the structured context (item id, available vs
requested, checkout id, ...) that is returned to the caller and logged.
"""


class StoreError(Exception):
    status_code = 500
    code = "StoreError"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.details}


class ValidationError(StoreError):
    """Malformed input rejected at the boundary."""

    status_code = 400
    code = "ValidationError"


class NotFoundError(StoreError):
    status_code = 404
    code = "NotFound"


class ItemNotFoundError(NotFoundError):
    code = "ItemNotFound"

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} not found", item_id=str(item_id))
        self.item_id = str(item_id)


class CartNotFoundError(NotFoundError):
    code = "CartNotFound"

    def __init__(self, member_id: str):
        super().__init__(f"No cart for member {member_id}", member_id=str(member_id))


class CartItemNotFoundError(NotFoundError):
    code = "CartItemNotFound"

    def __init__(self, member_id: str, item_id: str):
        super().__init__(
            f"Item {item_id} is not in the cart of member {member_id}",
            member_id=str(member_id),
            item_id=str(item_id),
        )


class OrderNotFoundError(NotFoundError):
    code = "OrderNotFound"

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", order_id=str(order_id))


class InsufficientStockError(StoreError):
    """Business-rule violation: more units requested than are on hand."""

    status_code = 400
    code = "InsufficientStock"

    def __init__(self, item_id: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for item {item_id}: {available} available, {requested} requested",
            item_id=str(item_id),
            available=available,
            requested=requested,
        )
        self.item_id = str(item_id)
        self.available = available
        self.requested = requested


class EmptyCartError(StoreError):
    status_code = 400
    code = "EmptyCart"

    def __init__(self, member_id: str):
        super().__init__(f"Cart of member {member_id} is empty", member_id=str(member_id))


class InvalidOperationError(StoreError):
    status_code = 409
    code = "InvalidOperation"


class ConcurrencyConflictError(StoreError):
    """A lock could not be acquired in time. Nothing was committed; retry with backoff."""

    status_code = 409
    code = "ConcurrencyConflict"
    retryable = True


class PersistencePartialFailureError(StoreError):
    """Stock was committed but the order was not. Requires manual reconciliation."""

    status_code = 500
    code = "PersistencePartialFailure"
    retryable = False
