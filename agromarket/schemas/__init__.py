# File: agromarket/schemas/__init__.py

from agromarket.schemas.inventory import (
    DailyRevenue,
    DashboardSnapshot,
    InventoryLogResponse,
    StockReconciliationResponse,
)
from agromarket.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductStatistics,
    ProductUpdate,
    StockAdjustmentRequest,
    StockChangeResponse,
)
from agromarket.schemas.sale import (
    CartLine,
    PaymentConfirmation,
    SaleCreate,
    SaleItemResponse,
    SaleResponse,
)

__all__ = [
    "CartLine",
    "DailyRevenue",
    "DashboardSnapshot",
    "InventoryLogResponse",
    "PaymentConfirmation",
    "ProductCreate",
    "ProductResponse",
    "ProductStatistics",
    "ProductUpdate",
    "SaleCreate",
    "SaleItemResponse",
    "SaleResponse",
    "StockAdjustmentRequest",
    "StockChangeResponse",
    "StockReconciliationResponse",
]
