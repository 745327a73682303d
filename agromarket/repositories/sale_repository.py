# File: agromarket/repositories/sale_repository.py

from datetime import date
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import desc, func, select

from agromarket.db.models.enums import SaleStatus
from agromarket.db.models.sales import Sale
from agromarket.repositories.base_repository import BaseRepository


class SaleRepository(BaseRepository[Sale]):
    """
    Repository for Sale entity operations.

    Items are loaded with their sale (selectin) and saved through the
    Sale.items cascade.
    """

    model = Sale

    def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 100) -> List[Sale]:
        """Sales of one buyer, newest first."""
        stmt = (
            select(Sale)
            .where(Sale.buyer_id == buyer_id)
            .order_by(desc(Sale.created_at), desc(Sale.id))
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_recent(self, limit: int = 5) -> List[Sale]:
        stmt = select(Sale).order_by(desc(Sale.created_at), desc(Sale.id)).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def completed_revenue(self) -> Decimal:
        """Sum of totals over sales whose payment completed (refunded sales excluded)."""
        stmt = select(func.coalesce(func.sum(Sale.total), 0)).where(
            Sale.status == SaleStatus.COMPLETED
        )
        total = self.session.execute(stmt).scalar_one()
        return Decimal(str(total)).quantize(Decimal("0.01"))

    def revenue_by_day(self) -> List[Tuple[date, Decimal]]:
        """Completed revenue grouped by the calendar day of the sale, oldest first."""
        day = func.date(Sale.created_at)
        stmt = (
            select(day.label("day"), func.sum(Sale.total).label("revenue"))
            .where(Sale.status == SaleStatus.COMPLETED)
            .group_by(day)
            .order_by(day)
        )
        result = []
        for row in self.session.execute(stmt).all():
            # SQLite returns the day as an ISO string
            sale_day = row.day if isinstance(row.day, date) else date.fromisoformat(row.day)
            result.append((sale_day, Decimal(str(row.revenue)).quantize(Decimal("0.01"))))
        return result
