# File: agromarket/db/models/sales.py
"""
Sales models for the AgroMarket store.

This module defines the Sale and SaleItem models. A Sale is created by the
checkout transaction with status `pending`; its line items carry snapshots of
the product name and price taken at checkout, so later catalog edits never
alter historical sales.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship, validates

from agromarket.db.models.base import (
    AbstractBase,
    ModelValidationError,
    TimestampMixin,
    enum_column,
)
from agromarket.db.models.enums import SaleStatus


class Sale(AbstractBase, TimestampMixin):
    """
    Sale header.

    Attributes:
        buyer_id: ID of the purchasing user
        total: Sum of the line subtotals
        payment_method: Label chosen at checkout (cash, card, ...)
        status: pending, completed, failed or refunded
        transaction_ref: Reference returned by the payment collaborator
    """

    __tablename__ = "sales"
    __table_args__ = (CheckConstraint("total >= 0", name="total_non_negative"),)

    buyer_id = Column(Integer, nullable=False, index=True)
    total = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    payment_method = Column(String(50), nullable=False)
    status = enum_column(SaleStatus, nullable=False, default=SaleStatus.PENDING, index=True)
    transaction_ref = Column(String(100), nullable=True)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
        lazy="selectin",
    )

    @validates("total")
    def validate_total(self, key: str, amount: Any) -> Decimal:
        amount = Decimal(str(amount))
        if amount < 0:
            raise ModelValidationError(self, key, "cannot be negative")
        return amount.quantize(Decimal("0.01"))

    @property
    def items_total(self) -> Decimal:
        """Sum of the line subtotals; always equals `total` for a persisted sale."""
        return sum((item.subtotal for item in self.items), Decimal("0.00"))

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["items"] = [item.to_dict() for item in self.items]
        return result

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, buyer_id={self.buyer_id}, total={self.total}, status={self.status})>"


class SaleItem(AbstractBase):
    """
    A single line of a sale.

    Attributes:
        sale_id: Parent sale
        position: Line number within the sale, starting at 1
        product_id: Product sold
        product_name: Product name at checkout time
        quantity: Units sold (positive)
        unit_price: Product price at checkout time
        subtotal: quantity x unit_price
    """

    __tablename__ = "sale_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
        UniqueConstraint("sale_id", "position", name="uq_sale_items_sale_position"),
    )

    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")
    product = relationship("Product", foreign_keys=[product_id])

    @validates("quantity")
    def validate_quantity(self, key: str, quantity: int) -> int:
        if quantity is None or quantity <= 0:
            raise ModelValidationError(self, key, "must be a positive integer")
        return quantity

    @validates("unit_price", "subtotal")
    def validate_amounts(self, key: str, amount: Any) -> Decimal:
        amount = Decimal(str(amount))
        if amount < 0:
            raise ModelValidationError(self, key, "cannot be negative")
        return amount.quantize(Decimal("0.01"))

    def __repr__(self) -> str:
        return f"<SaleItem(sale_id={self.sale_id}, product_id={self.product_id}, quantity={self.quantity}, subtotal={self.subtotal})>"


@event.listens_for(SaleItem, "before_insert")
def _check_subtotal(mapper, connection, target):
    if target.subtotal != (target.unit_price * target.quantity).quantize(Decimal("0.01")):
        raise ModelValidationError(target, "subtotal", "must equal quantity x unit_price")


@event.listens_for(SaleItem, "before_update")
@event.listens_for(SaleItem, "before_delete")
def _freeze_settled_items(mapper, connection, target):
    sale = target.sale
    if sale is not None and sale.status != SaleStatus.PENDING:
        raise ModelValidationError(
            target, "sale_id", f"items of a {SaleStatus(sale.status).value} sale are immutable"
        )
