# File: agromarket/schemas/product.py
"""
Product schemas for the AgroMarket API.

This module contains Pydantic models for catalog products and manual stock
adjustments.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agromarket.db.models.enums import InventoryLogType, ProductStatus
from agromarket.db.models.product import MAX_STOCK


class ProductBase(BaseModel):
    """
    Base schema for product data shared across different operations.
    """

    name: str = Field(..., description="Product name", min_length=1, max_length=255)
    category: str = Field(..., description="Catalog category", min_length=1, max_length=100)
    description: Optional[str] = Field(None, description="Free-text description")
    price: Decimal = Field(..., description="Unit price", ge=0, max_digits=12, decimal_places=2)
    min_stock: Optional[int] = Field(None, description="Reorder threshold", ge=0, le=MAX_STOCK)


class ProductCreate(ProductBase):
    """
    Schema for creating a new product. The starting stock is logged as an
    `initial` inventory entry.
    """

    stock: int = Field(0, description="Starting stock", ge=0, le=MAX_STOCK)


class ProductUpdate(BaseModel):
    """
    Schema for updating a product.

    All fields are optional to allow partial updates. A stock change is
    recorded in the inventory log.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0, le=MAX_STOCK)
    min_stock: Optional[int] = Field(None, ge=0, le=MAX_STOCK)
    status: Optional[ProductStatus] = None


class ProductResponse(ProductBase):
    """
    Schema for product responses.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    stock: int
    min_stock: int
    status: ProductStatus
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class StockAdjustmentRequest(BaseModel):
    """
    Schema for a manual stock adjustment.
    """

    delta: int = Field(..., description="Signed stock change", ge=-MAX_STOCK, le=MAX_STOCK)
    type: InventoryLogType = Field(..., description="restock, return or adjustment")
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Delta cannot be zero")
        return v

    @field_validator("type")
    @classmethod
    def type_is_manual(cls, v: InventoryLogType) -> InventoryLogType:
        if v not in InventoryLogType.manual_types():
            raise ValueError(f"'{v.value}' entries are not created manually")
        return v


class StockChangeResponse(BaseModel):
    """
    Schema for the outcome of a stock mutation.
    """

    model_config = ConfigDict(from_attributes=True)

    product_id: int
    log_type: InventoryLogType
    previous_stock: int
    new_stock: int
    delta: int


class ProductStatistics(BaseModel):
    product_count: int
    total_units: int
    total_value: Decimal
    out_of_stock: int
    by_category: Dict[str, int]
