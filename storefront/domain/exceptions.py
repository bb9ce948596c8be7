"""
Storefront exceptions.

StorefrontError (base)
├── ValidationError      missing or malformed input, raised before any write
├── NotFoundError        no such cart/order, or it belongs to somebody else
├── IllegalStateError    operation not allowed in the order's current status
├── StoreError           document store failure, wrapped with context
│   └── ConflictError    conditional write lost against a concurrent update
└── NotificationError    publish failure; logged, never propagated by services
"""


class StorefrontError(Exception):
    """
    Base exception for the cart/order core.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (ids, statuses, ...)
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class ValidationError(StorefrontError):
    """Raised when required fields are missing or invalid."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message, details={"errors": errors} if errors else None)
        self.errors = errors or []


class NotFoundError(StorefrontError):
    """Raised when a document is absent or not visible to the caller."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details)


class OrderNotFoundError(NotFoundError):
    """Ownership mismatch reports exactly the same error as a missing order."""

    def __init__(self, order_id: str):
        super().__init__("Order not found", details={"order_id": order_id})
        self.order_id = order_id


class CartItemNotFoundError(NotFoundError):
    def __init__(self, owner_id: str, product_id: str):
        super().__init__(
            f"Product {product_id} not found in the cart",
            details={"owner_id": owner_id, "product_id": product_id},
        )
        self.product_id = product_id


class IllegalStateError(StorefrontError):
    """Raised when an order's status does not allow the requested operation."""

    def __init__(self, order_id: str, current_status: str, message: str):
        super().__init__(
            message,
            details={"order_id": order_id, "current_status": current_status},
        )
        self.order_id = order_id
        self.current_status = current_status


class StoreError(StorefrontError):
    """Raised when the document store fails."""
    pass


class ConflictError(StoreError):
    """Raised when a conditional update finds a newer version than expected."""

    def __init__(self, collection: str, doc_id: str, expected: int, actual: int | None):
        super().__init__(
            f"Concurrent modification of {collection}/{doc_id}",
            details={"expected_version": expected, "actual_version": actual},
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual


class NotificationError(StorefrontError):
    """Raised by notification sinks; services log it and carry on."""
    pass
