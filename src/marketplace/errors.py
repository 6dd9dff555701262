"""Conflicts raised by stock, availability and order-state checks.

Each one is a ``ValidationError`` (``{field: [messages]}``) so callers can
treat it as an invalid request, and each also exposes ``detail()`` with the
structured facts behind the refusal.
"""

from protean.exceptions import ValidationError


class InsufficientStockError(ValidationError):
    """Raised when a product cannot cover the requested quantity."""

    def __init__(self, product_id: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            {"stock": [f"Only {available} items available for product {product_id}, but {requested} requested"]}
        )

    def detail(self) -> dict:
        return {
            "kind": "InsufficientStock",
            "product_id": self.product_id,
            "available": self.available,
            "requested": self.requested,
        }


class ProductUnavailableError(ValidationError):
    """Raised when a product is inactive or no longer exists."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__({"product": [f"Product {product_id} is no longer available"]})

    def detail(self) -> dict:
        return {"kind": "ProductUnavailable", "product_id": self.product_id}


class InvalidStateError(ValidationError):
    """Raised when an order or sale is not in a state that allows the operation."""

    def __init__(self, current: str, message: str):
        self.current = current
        super().__init__({"status": [message]})

    def detail(self) -> dict:
        return {"kind": "InvalidState", "current_status": self.current}
