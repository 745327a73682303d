# File: agromarket/db/models/product.py
"""
Defines the Product model: the catalog entry that owns a product's price and
its current stock level.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String, Text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import validates

from agromarket.db.models.base import (
    AbstractBase,
    ModelValidationError,
    TimestampMixin,
    enum_column,
)
from agromarket.db.models.enums import ProductStatus

# Largest count a signed 32-bit INTEGER column holds
MAX_STOCK = 2_147_483_647


class Product(AbstractBase, TimestampMixin):
    """
    Represents a catalog product available for sale.

    Stock is changed only through ProductService, which writes an
    InventoryLogEntry in the same transaction as every change.

    Attributes:
        name: Display name
        category: Catalog category label
        description: Optional free text
        price: Unit price (non-negative, two decimal places)
        stock: Units currently available (never negative)
        min_stock: Reorder threshold; stock below it is "low stock"
        status: active or inactive (soft delete)
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        CheckConstraint("price >= 0", name="price_non_negative"),
        CheckConstraint("min_stock >= 0", name="min_stock_non_negative"),
    )

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=10)
    status = enum_column(
        ProductStatus, nullable=False, default=ProductStatus.ACTIVE, index=True
    )

    @validates("stock", "min_stock")
    def validate_counts(self, key: str, value: int) -> int:
        if value is None or int(value) != value:
            raise ModelValidationError(self, key, "must be an integer")
        if value < 0:
            raise ModelValidationError(self, key, "cannot be negative")
        if value > MAX_STOCK:
            raise ModelValidationError(self, key, f"cannot exceed {MAX_STOCK}")
        return int(value)

    @validates("price")
    def validate_price(self, key: str, price: Any) -> Decimal:
        if price is None:
            raise ModelValidationError(self, key, "is required")
        price = Decimal(str(price))
        if price < 0:
            raise ModelValidationError(self, key, "cannot be negative")
        return price.quantize(Decimal("0.01"))

    @hybrid_property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    @is_active.expression
    def is_active(cls):
        return cls.status == ProductStatus.ACTIVE

    @hybrid_property
    def is_low_stock(self) -> bool:
        return self.stock < self.min_stock

    @is_low_stock.expression
    def is_low_stock(cls):
        return cls.stock < cls.min_stock

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["is_low_stock"] = self.is_low_stock
        return result

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock}, status={self.status})>"
