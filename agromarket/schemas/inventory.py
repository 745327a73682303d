# File: agromarket/schemas/inventory.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agromarket.db.models.enums import InventoryLogType
from agromarket.schemas.sale import SaleResponse


class InventoryLogResponse(BaseModel):
    """
    Schema for an inventory log entry.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    type: InventoryLogType
    quantity: int = Field(..., description="Magnitude of the change")
    previous_stock: int
    new_stock: int
    signed_quantity: int = Field(..., description="Signed stock change")
    note: Optional[str] = None
    actor_id: Optional[int] = None
    sale_id: Optional[int] = None
    created_at: datetime


class DashboardSnapshot(BaseModel):
    """
    Schema for the admin dashboard.
    """

    total_products: int
    total_revenue: Decimal
    low_stock_count: int
    recent_sales: List[SaleResponse]


class DailyRevenue(BaseModel):
    """
    Completed revenue of one calendar day.
    """

    day: date
    revenue: Decimal


class StockReconciliationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    current_stock: int
    logged_stock: int
    entry_count: int
    difference: int
    is_consistent: bool
