# File: agromarket/repositories/__init__.py

from agromarket.repositories.base_repository import BaseRepository
from agromarket.repositories.inventory_log_repository import InventoryLogRepository
from agromarket.repositories.product_repository import ProductRepository
from agromarket.repositories.sale_repository import SaleRepository

__all__ = [
    "BaseRepository",
    "InventoryLogRepository",
    "ProductRepository",
    "SaleRepository",
]
