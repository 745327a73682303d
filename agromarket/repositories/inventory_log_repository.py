# File: agromarket/repositories/inventory_log_repository.py

from typing import List, Optional

from sqlalchemy import desc, func, select

from agromarket.db.models.enums import InventoryLogType
from agromarket.db.models.inventory import InventoryLogEntry
from agromarket.repositories.base_repository import BaseRepository


class InventoryLogRepository(BaseRepository[InventoryLogEntry]):
    """
    Repository for the append-only inventory log.

    Offers no update or delete: entries are only ever appended.
    """

    model = InventoryLogEntry

    def append(
        self,
        product_id: int,
        log_type: InventoryLogType,
        previous_stock: int,
        new_stock: int,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
        sale_id: Optional[int] = None,
    ) -> InventoryLogEntry:
        entry = InventoryLogEntry(
            product_id=product_id,
            type=log_type,
            quantity=abs(new_stock - previous_stock),
            previous_stock=previous_stock,
            new_stock=new_stock,
            note=note,
            actor_id=actor_id,
            sale_id=sale_id,
        )
        return self.add(entry)

    def list_for_product(self, product_id: int, limit: int = 50) -> List[InventoryLogEntry]:
        """Entries for one product, newest first."""
        stmt = (
            select(InventoryLogEntry)
            .where(InventoryLogEntry.product_id == product_id)
            .order_by(desc(InventoryLogEntry.created_at), desc(InventoryLogEntry.id))
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_for_sale(self, sale_id: int) -> List[InventoryLogEntry]:
        stmt = (
            select(InventoryLogEntry)
            .where(InventoryLogEntry.sale_id == sale_id)
            .order_by(InventoryLogEntry.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def signed_total(self, product_id: int) -> int:
        """Sum of the signed stock deltas recorded for a product."""
        stmt = select(
            func.coalesce(
                func.sum(InventoryLogEntry.new_stock - InventoryLogEntry.previous_stock), 0
            )
        ).where(InventoryLogEntry.product_id == product_id)
        return int(self.session.execute(stmt).scalar_one())

    def count_for_product(self, product_id: int) -> int:
        return self.count(product_id=product_id)
