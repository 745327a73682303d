# File: agromarket/db/models/enums.py
"""
Enumeration types shared by the AgroMarket models, schemas and services.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Lifecycle of a catalog product. Products are never physically deleted."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class InventoryLogType(str, Enum):
    """Kind of stock mutation recorded in the inventory log."""

    SALE = "sale"
    RESTOCK = "restock"
    ADJUSTMENT = "adjustment"
    RETURN = "return"
    REFUND = "refund"
    INITIAL = "initial"

    @property
    def direction(self) -> int:
        """
        Sign of the stock change this type implies.

        Returns:
            -1 for decreases, +1 for increases, 0 when either sign is allowed
        """
        if self is InventoryLogType.SALE:
            return -1
        if self is InventoryLogType.ADJUSTMENT:
            return 0
        return 1

    @classmethod
    def manual_types(cls) -> "tuple[InventoryLogType, ...]":
        """Types an administrator may apply through a direct stock adjustment."""
        return (cls.RESTOCK, cls.ADJUSTMENT, cls.RETURN)


class SaleStatus(str, Enum):
    """Payment/lifecycle status of a sale."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentOutcome(str, Enum):
    """Result reported by the external payment collaborator."""

    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def sale_status(self) -> SaleStatus:
        return SaleStatus(self.value)
