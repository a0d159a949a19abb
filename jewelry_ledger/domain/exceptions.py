"""Domain-specific exceptions"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidSaleRequestError(DomainException):
    """Sale request is malformed (negative amounts, bad percentages)"""

    pass


class EmptySaleError(InvalidSaleRequestError):
    """Sale request has no line items"""

    def __init__(self) -> None:
        super().__init__("Sale must contain at least one line item")


class InvalidLineItemError(InvalidSaleRequestError):
    """A line item has a non-positive quantity or weight, or no source"""

    def __init__(self, line_index: int, reason: str):
        super().__init__(f"Line item {line_index}: {reason}")
        self.line_index = line_index
        self.reason = reason


class InactiveCustomerError(InvalidSaleRequestError):
    """Customer is deactivated and cannot take new sales"""

    def __init__(self, customer_id: Any):
        super().__init__(f"Customer {customer_id} is inactive")
        self.customer_id = customer_id


class NotFoundError(DomainException):
    """Referenced customer, inventory item or sale does not exist"""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(DomainException):
    """Decrement would drive an inventory item's quantity below zero"""

    def __init__(self, item_id: Any, requested: int, available: int, item_name: Optional[str] = None):
        label = item_name or str(item_id)
        super().__init__(f"Insufficient stock for {label}: requested {requested}, available {available}")
        self.item_id = item_id
        self.item_name = item_name
        self.requested = requested
        self.available = available

    def as_detail(self) -> Dict[str, Any]:
        return {
            "message": str(self),
            "item_id": str(self.item_id),
            "item_name": self.item_name,
            "requested": self.requested,
            "available": self.available,
        }


class PricingUnavailableError(DomainException):
    """No usable per-gram rate for a metal"""

    def __init__(self, metal: str):
        super().__init__(f"No price available for {metal}")
        self.metal = metal


class InvalidPriceError(DomainException):
    """Daily price must be a positive amount"""

    pass


class InvalidPaymentError(DomainException):
    """Payment amount is non-positive or exceeds the outstanding balance"""

    pass


class TransactionConflictError(DomainException):
    """Optimistic transaction kept conflicting after all retry attempts"""

    def __init__(self, attempts: int):
        super().__init__(f"Transaction conflicted on each of {attempts} attempts")
        self.attempts = attempts


class TransactionTimeoutError(DomainException):
    """Caller deadline expired before the transaction committed"""

    pass


class InvalidInventoryError(DomainException):
    """Catalog entry or manual stock edit with a negative quantity or weight"""

    pass
