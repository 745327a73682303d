# File: agromarket/core/exceptions.py

from datetime import datetime
from typing import Any, Dict, List, Optional


class MarketException(Exception):
    """Base exception for all AgroMarket errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize an AgroMarket exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Domain-specific exceptions
class DomainException(MarketException):
    """Base exception for caller errors. Never retried, never partially applied."""

    CODE_PREFIX = "DOMAIN_"


class EntityNotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


class ProductNotFoundException(EntityNotFoundException):
    """Raised when a product is missing or has been deactivated."""

    def __init__(self, product_id: Any):
        super().__init__("Product", product_id)
        self.product_id = product_id


class SaleNotFoundException(EntityNotFoundException):
    """Raised when a requested sale does not exist."""

    def __init__(self, sale_id: Any):
        super().__init__("Sale", sale_id)
        self.sale_id = sale_id


# Inventory-related exceptions
class InventoryException(DomainException):
    """Base exception for stock-related errors."""

    CODE_PREFIX = "INVENTORY_"


class InsufficientStockException(InventoryException):
    """Raised when a mutation would drive a product's stock below zero."""

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            f"{self.CODE_PREFIX}001",
            {
                "product_id": product_id,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


# Sale-related exceptions
class SaleException(DomainException):
    """Base exception for sale-related errors."""

    CODE_PREFIX = "SALE_"


class InvalidStateException(SaleException):
    """Raised when an operation is not valid for the sale's current status."""

    def __init__(self, sale_id: int, current_status: str, attempted: str):
        super().__init__(
            f"Cannot {attempted} sale {sale_id} in status '{current_status}'",
            f"{self.CODE_PREFIX}001",
            {
                "sale_id": sale_id,
                "current_status": current_status,
                "attempted": attempted,
            },
        )
        self.sale_id = sale_id
        self.current_status = current_status


# Validation exceptions
class ValidationException(DomainException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Infrastructure exceptions
class InfrastructureException(MarketException):
    """
    Base exception for storage-layer failures.

    The failed operation left no partial effects, so the caller may retry the
    whole call.
    """

    CODE_PREFIX = "STORAGE_"


class PersistenceException(InfrastructureException):
    """Raised when the database rejects or fails a transaction."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(
            message,
            f"{self.CODE_PREFIX}001",
            {"operation": operation} if operation else {},
        )


class BusyException(InfrastructureException):
    """Raised when a row lock could not be acquired within the configured timeout."""

    def __init__(self, message: str = "Resource is busy, try again", operation: Optional[str] = None):
        super().__init__(
            message,
            f"{self.CODE_PREFIX}002",
            {"operation": operation} if operation else {},
        )
