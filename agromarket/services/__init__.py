# File: agromarket/services/__init__.py

from agromarket.services.product_service import ProductService, StockChange
from agromarket.services.sale_service import SaleService
from agromarket.services.stock_query_service import StockQueryService, StockReconciliation

__all__ = [
    "ProductService",
    "SaleService",
    "StockChange",
    "StockQueryService",
    "StockReconciliation",
]
