# File: agromarket/schemas/sale.py
"""
Sale schemas for the AgroMarket API.

This module contains Pydantic models for checkout carts, payment
confirmation and sale responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agromarket.db.models.enums import PaymentOutcome, SaleStatus
from agromarket.db.models.product import MAX_STOCK


class CartLine(BaseModel):
    """
    A single cart line. Prices are never taken from the cart.
    """

    product_id: int = Field(..., description="Product to buy")
    quantity: int = Field(..., description="Units to buy", gt=0, le=MAX_STOCK)


class SaleCreate(BaseModel):
    """
    Schema for checking out a cart.

    Lines for the same product are merged, keeping first-appearance order.
    """

    items: List[CartLine] = Field(..., description="Ordered cart lines", min_length=1)
    payment_method: str = Field(..., description="Payment method label", min_length=1, max_length=50)

    @field_validator("items")
    @classmethod
    def merge_duplicate_lines(cls, v: List[CartLine]) -> List[CartLine]:
        merged = {}
        for line in v:
            if line.product_id in merged:
                merged[line.product_id] += line.quantity
            else:
                merged[line.product_id] = line.quantity
            if merged[line.product_id] > MAX_STOCK:
                raise ValueError(f"Total quantity of product {line.product_id} cannot exceed {MAX_STOCK}")
        return [CartLine(product_id=pid, quantity=qty) for pid, qty in merged.items()]


class PaymentConfirmation(BaseModel):
    """
    Schema for the outcome reported by the payment collaborator.
    """

    outcome: PaymentOutcome
    transaction_ref: Optional[str] = Field(None, max_length=100)


class SaleItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    position: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class SaleResponse(BaseModel):
    """
    Schema for sale responses, including the ordered items.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    buyer_id: int
    total: Decimal
    payment_method: str
    status: SaleStatus
    transaction_ref: Optional[str] = None
    items: List[SaleItemResponse]
    created_at: datetime
    updated_at: datetime
