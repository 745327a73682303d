# File: agromarket/db/models/__init__.py
"""
Model registry for the AgroMarket store.

Importing this package registers every model class on the shared metadata,
so `Base.metadata.create_all()` sees the complete schema.
"""

from agromarket.db.models.base import AbstractBase, Base, ModelValidationError
from agromarket.db.models.enums import (
    InventoryLogType,
    PaymentOutcome,
    ProductStatus,
    SaleStatus,
)
from agromarket.db.models.inventory import InventoryLogEntry
from agromarket.db.models.product import Product
from agromarket.db.models.sales import Sale, SaleItem

__all__ = [
    "AbstractBase",
    "Base",
    "ModelValidationError",
    "InventoryLogType",
    "PaymentOutcome",
    "ProductStatus",
    "SaleStatus",
    "InventoryLogEntry",
    "Product",
    "Sale",
    "SaleItem",
]
