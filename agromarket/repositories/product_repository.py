# File: agromarket/repositories/product_repository.py

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import desc, func, select

from agromarket.db.models.enums import ProductStatus
from agromarket.db.models.product import Product
from agromarket.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProductRepository(BaseRepository[Product]):
    """
    Repository for Product entity operations.

    Provides catalog reads, the ordered row locks used by stock mutations
    and the aggregate queries behind the low-stock and statistics views.
    """

    model = Product

    def get_active(self, product_id: int) -> Optional[Product]:
        product = self.get_by_id(product_id)
        if product is None or product.status != ProductStatus.ACTIVE:
            return None
        return product

    def lock_many(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """
        Lock product rows in ascending id order.

        Every write path acquires product locks through this method, so two
        transactions never wait on each other's rows in opposite orders.

        Args:
            product_ids: Product ids to lock (duplicates ignored)

        Returns:
            Mapping of id to locked Product; missing ids are absent
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        products = self.session.execute(stmt).scalars().all()
        logger.debug(f"Locked {len(products)} product rows: {ids}")
        return {product.id: product for product in products}

    def list_active(
        self, category: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[Product]:
        """Active products, newest first, optionally restricted to one category."""
        stmt = select(Product).where(Product.is_active)
        if category:
            stmt = stmt.where(Product.category == category)
        stmt = stmt.order_by(desc(Product.created_at), desc(Product.id)).offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def list_categories(self) -> List[str]:
        stmt = (
            select(Product.category)
            .where(Product.is_active)
            .distinct()
            .order_by(Product.category)
        )
        return list(self.session.execute(stmt).scalars().all())

    def _low_stock_stmt(self):
        return (
            select(Product)
            .where(Product.is_active, Product.is_low_stock)
            .order_by(Product.stock, Product.id)
        )

    def list_low_stock(self) -> List[Product]:
        return list(self.session.execute(self._low_stock_stmt()).scalars().all())

    def stream_low_stock(self, batch_size: int = 100) -> Iterator[Product]:
        return self.stream(self._low_stock_stmt(), batch_size=batch_size)

    def count_active(self) -> int:
        return self.count(status=ProductStatus.ACTIVE)

    def count_low_stock(self) -> int:
        stmt = (
            select(func.count(Product.id))
            .where(Product.is_active, Product.is_low_stock)
        )
        return self.session.execute(stmt).scalar_one()

    def get_statistics(self) -> Dict[str, Any]:
        """
        Aggregate stock figures over active products.

        Returns:
            Dictionary with counts, total units, total stock value and a
            per-category product count
        """
        totals_stmt = select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.stock), 0),
            func.coalesce(func.sum(Product.stock * Product.price), 0),
        ).where(Product.is_active)
        product_count, total_units, total_value = self.session.execute(totals_stmt).one()

        out_of_stock_stmt = select(func.count(Product.id)).where(
            Product.is_active, Product.stock == 0
        )
        out_of_stock = self.session.execute(out_of_stock_stmt).scalar_one()

        category_stmt = (
            select(Product.category, func.count(Product.id))
            .where(Product.is_active)
            .group_by(Product.category)
            .order_by(Product.category)
        )
        by_category = {category: count for category, count in self.session.execute(category_stmt)}

        return {
            "product_count": product_count,
            "total_units": int(total_units),
            "total_value": Decimal(str(total_value)).quantize(Decimal("0.01")),
            "out_of_stock": out_of_stock,
            "by_category": by_category,
        }
