# File: agromarket/services/stock_query_service.py

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from agromarket.core.config import settings
from agromarket.core.exceptions import ProductNotFoundException
from agromarket.db.models.inventory import InventoryLogEntry
from agromarket.db.models.product import Product
from agromarket.repositories.inventory_log_repository import InventoryLogRepository
from agromarket.repositories.product_repository import ProductRepository
from agromarket.repositories.sale_repository import SaleRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockReconciliation:
    """Comparison of a product's stock with the changes its log records."""

    product_id: int
    current_stock: int
    logged_stock: int
    entry_count: int

    @property
    def difference(self) -> int:
        return self.current_stock - self.logged_stock

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


class StockQueryService:
    """
    Read-side service for stock levels, low-stock alerts, history and the
    admin dashboard.

    Takes no locks and never writes; figures may be momentarily skewed
    while checkouts are committing.
    """

    def __init__(self, session: Session):
        """
        Initialize the query service.

        Args:
            session: Database session for read operations
        """
        self.session = session
        self.product_repository = ProductRepository(session)
        self.log_repository = InventoryLogRepository(session)
        self.sale_repository = SaleRepository(session)

    def get_current_stock(self, product_id: int) -> int:
        product = self.product_repository.get_active(product_id)
        if product is None:
            raise ProductNotFoundException(product_id)
        return product.stock

    def list_low_stock(self) -> List[Product]:
        """Active products below their reorder threshold, lowest stock first."""
        return self.product_repository.list_low_stock()

    def iter_low_stock(self, batch_size: Optional[int] = None) -> Iterator[Product]:
        """
        Lazily iterate low-stock products, reading them in batches.

        Each call starts a fresh scan.
        """
        return self.product_repository.stream_low_stock(batch_size or settings.LOW_STOCK_BATCH_SIZE)

    def get_inventory_history(self, product_id: int, limit: int = 50) -> List[InventoryLogEntry]:
        """
        Get inventory log entries of a product, newest first.

        Inactive products keep their history, so they are included.

        Raises:
            ProductNotFoundException: If the product does not exist
        """
        if self.product_repository.get_by_id(product_id) is None:
            raise ProductNotFoundException(product_id)
        return self.log_repository.list_for_product(product_id, limit=limit)

    def get_dashboard_snapshot(self, recent_limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Get the admin dashboard figures.

        Returns:
            Dictionary with the active product count, completed revenue,
            low-stock count and the most recent sales
        """
        recent_limit = recent_limit or settings.DASHBOARD_RECENT_SALES
        snapshot = {
            "total_products": self.product_repository.count_active(),
            "total_revenue": self.sale_repository.completed_revenue(),
            "low_stock_count": self.product_repository.count_low_stock(),
            "recent_sales": self.sale_repository.list_recent(limit=recent_limit),
        }
        logger.debug(
            f"Dashboard snapshot: {snapshot['total_products']} products, "
            f"revenue {snapshot['total_revenue']}, {snapshot['low_stock_count']} low"
        )
        return snapshot

    def get_product_statistics(self) -> Dict[str, Any]:
        return self.product_repository.get_statistics()

    def get_revenue_by_day(self) -> List[Dict[str, Any]]:
        """
        Get completed revenue per calendar day, oldest day first.

        Refunded and unpaid sales are not counted.
        """
        return [
            {"day": day, "revenue": revenue} for day, revenue in self.sale_repository.revenue_by_day()
        ]

    def reconcile_stock(self, product_id: int) -> StockReconciliation:
        """
        Check that a product's stock equals the sum of its logged changes.

        Raises:
            ProductNotFoundException: If the product does not exist
        """
        product = self.product_repository.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundException(product_id)

        result = StockReconciliation(
            product_id=product_id,
            current_stock=product.stock,
            logged_stock=self.log_repository.signed_total(product_id),
            entry_count=self.log_repository.count_for_product(product_id),
        )
        if not result.is_consistent:
            logger.warning(
                f"Stock of product {product_id} is {result.current_stock} but its log sums to "
                f"{result.logged_stock}"
            )
        return result
