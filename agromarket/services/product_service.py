# File: agromarket/services/product_service.py
"""
Product ledger service for AgroMarket.

Owns each product's current stock and price. Every stock change in the
system goes through `ProductService.apply_delta`, which updates the product
row and appends the matching inventory log entry in the caller's
transaction.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from agromarket.core.config import settings
from agromarket.core.events import EventBus, LowStockAlert, StockAdjusted
from agromarket.core.exceptions import (
    InsufficientStockException,
    ProductNotFoundException,
    ValidationException,
)
from agromarket.db.models.enums import InventoryLogType, ProductStatus
from agromarket.db.models.product import MAX_STOCK, Product
from agromarket.repositories.inventory_log_repository import InventoryLogRepository
from agromarket.repositories.product_repository import ProductRepository
from agromarket.services.base_service import BaseService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "category", "description", "price", "stock", "min_stock", "status")


@dataclass(frozen=True)
class StockChange:
    """Outcome of a single stock mutation."""

    product_id: int
    log_type: InventoryLogType
    previous_stock: int
    new_stock: int

    @property
    def delta(self) -> int:
        return self.new_stock - self.previous_stock


class ProductService(BaseService):
    """
    Service for catalog products and their stock.

    Responsibilities:
    - Catalog reads (active products, categories)
    - Product creation, edits and soft deletion
    - Manual stock adjustments by administrators
    - The single stock mutation helper used by every write path
    """

    def __init__(
        self,
        session: Session,
        event_bus: Optional[EventBus] = None,
        repository: Optional[ProductRepository] = None,
        log_repository: Optional[InventoryLogRepository] = None,
    ):
        super().__init__(session, event_bus=event_bus)
        self.repository = repository or ProductRepository(session)
        self.log_repository = log_repository or InventoryLogRepository(session)

    # --- Reads ---

    def get_product(self, product_id: int, include_inactive: bool = False) -> Product:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundException: If missing (or inactive, unless include_inactive)
        """
        if include_inactive:
            product = self.repository.get_by_id(product_id)
        else:
            product = self.repository.get_active(product_id)
        if product is None:
            raise ProductNotFoundException(product_id)
        return product

    def get_stock(self, product_id: int) -> int:
        return self.get_product(product_id).stock

    def list_products(
        self, category: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[Product]:
        return self.repository.list_active(category=category, skip=skip, limit=limit)

    def list_categories(self) -> List[str]:
        return self.repository.list_categories()

    # --- Stock mutation ---

    def apply_delta(
        self,
        product: Product,
        delta: int,
        log_type: InventoryLogType,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
        sale_id: Optional[int] = None,
    ) -> StockChange:
        """
        Change a product's stock and record the change in the inventory log.

        Must run inside a write transaction, on a product row locked by it.
        Nothing is written when the change is rejected.

        Args:
            product: The locked product
            delta: Signed stock change (non-zero)
            log_type: Kind of mutation to record
            note: Optional note for the log entry
            actor_id: Optional user causing the change
            sale_id: Optional sale the change belongs to

        Returns:
            StockChange with the stock before and after

        Raises:
            InsufficientStockException: If the change would make stock negative
            ValidationException: If the change would exceed the storable stock
        """
        previous_stock = product.stock
        new_stock = previous_stock + delta
        if new_stock < 0:
            raise InsufficientStockException(product.id, -delta, previous_stock)
        if new_stock > MAX_STOCK:
            raise ValidationException(
                f"Stock of product {product.id} cannot exceed {MAX_STOCK}",
                {"delta": [f"would raise stock above {MAX_STOCK}"]},
            )

        product.stock = new_stock
        self.log_repository.append(
            product_id=product.id,
            log_type=log_type,
            previous_stock=previous_stock,
            new_stock=new_stock,
            note=note,
            actor_id=actor_id,
            sale_id=sale_id,
        )

        self._emit(
            StockAdjusted(
                product_id=product.id,
                log_type=log_type.value,
                previous_stock=previous_stock,
                new_stock=new_stock,
                sale_id=sale_id,
                actor_id=actor_id,
            )
        )
        if delta < 0 and new_stock < product.min_stock:
            self._emit(
                LowStockAlert(
                    product_id=product.id,
                    name=product.name,
                    stock=new_stock,
                    min_stock=product.min_stock,
                )
            )

        logger.debug(
            f"Product {product.id} stock {previous_stock} -> {new_stock} ({log_type.value})"
        )
        return StockChange(
            product_id=product.id,
            log_type=log_type,
            previous_stock=previous_stock,
            new_stock=new_stock,
        )

    def adjust_stock(
        self,
        product_id: int,
        delta: int,
        type: Any,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> StockChange:
        """
        Apply a manual stock adjustment.

        Args:
            product_id: Product to adjust
            delta: Signed change; must agree with the type's direction
            type: restock (+), return (+) or adjustment (+/-)
            note: Optional note for the log entry
            actor_id: Optional administrator id

        Returns:
            StockChange with the stock before and after

        Raises:
            ValidationException: If delta is zero or does not match the type
            ProductNotFoundException: If the product is missing or inactive
            InsufficientStockException: If stock would drop below zero
        """
        log_type = self._parse_manual_type(type)
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationException(
                "Stock delta must be a non-zero integer", {"delta": ["must be a non-zero integer"]}
            )
        if abs(delta) > MAX_STOCK:
            raise ValidationException(
                f"Stock delta cannot exceed {MAX_STOCK} units",
                {"delta": [f"cannot exceed {MAX_STOCK} in magnitude"]},
            )
        if log_type.direction and (delta > 0) != (log_type.direction > 0):
            raise ValidationException(
                f"A '{log_type.value}' adjustment cannot change stock by {delta}",
                {"delta": [f"sign does not match type '{log_type.value}'"]},
            )

        with self.transaction("adjust_stock"):
            product = self.repository.lock_many([product_id]).get(product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundException(product_id)
            change = self.apply_delta(product, delta, log_type, note=note, actor_id=actor_id)

        logger.info(
            f"Adjusted stock of product {product_id} by {delta} ({log_type.value}): "
            f"{change.previous_stock} -> {change.new_stock}"
        )
        return change

    @staticmethod
    def _parse_manual_type(value: Any) -> InventoryLogType:
        try:
            log_type = InventoryLogType(value)
        except ValueError:
            log_type = None
        if log_type not in InventoryLogType.manual_types():
            allowed = ", ".join(t.value for t in InventoryLogType.manual_types())
            raise ValidationException(
                f"Invalid adjustment type '{value}'", {"type": [f"must be one of: {allowed}"]}
            )
        return log_type

    # --- Catalog administration ---

    def create_product(self, data: Dict[str, Any], actor_id: Optional[int] = None) -> Product:
        """
        Create a product and log its starting stock as an `initial` entry.

        Args:
            data: name, category, price and optionally description, stock, min_stock
            actor_id: Optional administrator id

        Returns:
            The created product
        """
        clean = self._validate_product_data(data, partial=False)
        initial_stock = clean.pop("stock", 0)
        clean.setdefault("min_stock", settings.DEFAULT_MIN_STOCK)
        clean["stock"] = 0
        clean["status"] = ProductStatus.ACTIVE

        with self.transaction("create_product"):
            product = self.repository.create(clean)
            if initial_stock:
                self.apply_delta(
                    product, initial_stock, InventoryLogType.INITIAL, note="Initial stock", actor_id=actor_id
                )

        logger.info(f"Created product {product.id} '{product.name}' with stock {product.stock}")
        return product

    def update_product(
        self, product_id: int, data: Dict[str, Any], actor_id: Optional[int] = None
    ) -> Product:
        """
        Edit a product. A stock change is logged as `restock` when it grows
        and as `adjustment` when it shrinks, in the same transaction.

        Raises:
            ProductNotFoundException: If the product does not exist
            ValidationException: If any field is invalid
        """
        clean = self._validate_product_data(data, partial=True)
        new_stock = clean.pop("stock", None)

        with self.transaction("update_product"):
            product = self.repository.lock_many([product_id]).get(product_id)
            if product is None:
                raise ProductNotFoundException(product_id)
            self.repository.update(product, clean)
            if new_stock is not None and new_stock != product.stock:
                delta = new_stock - product.stock
                log_type = InventoryLogType.RESTOCK if delta > 0 else InventoryLogType.ADJUSTMENT
                self.apply_delta(product, delta, log_type, note="Product edit", actor_id=actor_id)

        logger.info(f"Updated product {product_id}: {sorted(data.keys())}")
        return product

    def soft_delete_product(self, product_id: int) -> Product:
        """Mark a product inactive. Stock and history are kept."""
        with self.transaction("soft_delete_product"):
            product = self.repository.lock_many([product_id]).get(product_id)
            if product is None:
                raise ProductNotFoundException(product_id)
            product.status = ProductStatus.INACTIVE

        logger.info(f"Deactivated product {product_id}")
        return product

    def _validate_product_data(self, data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
        errors: Dict[str, List[str]] = {}
        clean = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}

        if not partial:
            for field in ("name", "category", "price"):
                if field not in clean:
                    errors.setdefault(field, []).append("is required")

        for field in ("name", "category"):
            if field in clean and not str(clean[field]).strip():
                errors.setdefault(field, []).append("cannot be empty")

        if "price" in clean:
            try:
                price = Decimal(str(clean["price"]))
            except InvalidOperation:
                errors.setdefault("price", []).append("must be a number")
            else:
                if not price.is_finite() or price < 0:
                    errors.setdefault("price", []).append("must be a non-negative number")
                else:
                    clean["price"] = price.quantize(Decimal("0.01"))

        for field in ("stock", "min_stock"):
            if field in clean:
                value = clean[field]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    errors.setdefault(field, []).append("must be a non-negative integer")
                elif value > MAX_STOCK:
                    errors.setdefault(field, []).append(f"cannot exceed {MAX_STOCK}")

        if "status" in clean:
            try:
                clean["status"] = ProductStatus(clean["status"])
            except ValueError:
                errors.setdefault("status", []).append("must be 'active' or 'inactive'")

        if errors:
            raise ValidationException("Invalid product data", errors)
        return clean
