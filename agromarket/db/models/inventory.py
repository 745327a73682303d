# File: agromarket/db/models/inventory.py
"""
InventoryLogEntry model: the append-only audit trail of stock mutations.

Every change to Product.stock is recorded here exactly once, inside the same
transaction as the change itself. Entries are never edited or removed.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    event,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship, validates

from agromarket.db.models.base import (
    AbstractBase,
    ModelValidationError,
    enum_column,
    utcnow,
)
from agromarket.db.models.enums import InventoryLogType


class InventoryLogEntry(AbstractBase):
    """
    Records a single stock movement for a product.

    Attributes:
        product_id: Product whose stock changed
        type: Kind of mutation (sale, restock, adjustment, return, refund, initial)
        quantity: Magnitude of the change (always positive)
        previous_stock: Stock before the change
        new_stock: Stock after the change
        note: Optional free text
        actor_id: Optional id of the user who caused the change
        sale_id: Sale the change belongs to, for sale/refund/return entries
        created_at: When the change was committed
    """

    __tablename__ = "inventory_log"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("previous_stock >= 0", name="previous_stock_non_negative"),
        CheckConstraint("new_stock >= 0", name="new_stock_non_negative"),
    )

    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    type = enum_column(InventoryLogType, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)
    actor_id = Column(Integer, nullable=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    product = relationship("Product", foreign_keys=[product_id])
    sale = relationship("Sale", foreign_keys=[sale_id])

    @validates("quantity")
    def validate_quantity(self, key: str, quantity: int) -> int:
        """Validate entry quantity (must be a positive magnitude)."""
        if quantity is None or quantity <= 0:
            raise ModelValidationError(self, key, "must be a positive integer")
        return quantity

    @hybrid_property
    def signed_quantity(self) -> int:
        """Stock delta this entry applied (negative for decreases)."""
        return self.new_stock - self.previous_stock

    def check_consistency(self) -> None:
        """
        Verify before/after stock agree with the quantity and the type's direction.

        Raises:
            ModelValidationError: If the entry does not describe its own change
        """
        delta = self.new_stock - self.previous_stock
        if abs(delta) != self.quantity:
            raise ModelValidationError(
                self,
                "quantity",
                f"{self.previous_stock} -> {self.new_stock} does not match quantity {self.quantity}",
            )
        direction = InventoryLogType(self.type).direction
        if direction and (delta > 0) != (direction > 0):
            raise ModelValidationError(
                self, "type", f"'{InventoryLogType(self.type).value}' cannot change stock by {delta}"
            )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["signed_quantity"] = self.signed_quantity
        return result

    def __repr__(self) -> str:
        return (
            f"<InventoryLogEntry(id={self.id}, product_id={self.product_id}, type={self.type}, "
            f"{self.previous_stock}->{self.new_stock})>"
        )


@event.listens_for(InventoryLogEntry, "before_insert")
def _check_before_insert(mapper, connection, target):
    target.check_consistency()


@event.listens_for(InventoryLogEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise ModelValidationError(target, "id", "inventory log entries are append-only")


@event.listens_for(InventoryLogEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ModelValidationError(target, "id", "inventory log entries are append-only")
