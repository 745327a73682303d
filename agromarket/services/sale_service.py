# File: agromarket/services/sale_service.py
"""
Sale service for AgroMarket.

The checkout transaction converts a cart into a persisted sale: it locks the
products involved, validates stock, decrements it with inventory log entries
and writes the sale with its items, all in one transaction. Payment
confirmation and refunds follow the same locking discipline: sale row first,
then product rows in ascending id order.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from agromarket.core.config import settings
from agromarket.core.events import EventBus, PaymentStatusChanged, SaleCreated, SaleRefunded
from agromarket.core.exceptions import (
    InsufficientStockException,
    InvalidStateException,
    ProductNotFoundException,
    SaleNotFoundException,
    ValidationException,
)
from agromarket.db.models.enums import InventoryLogType, PaymentOutcome, SaleStatus
from agromarket.db.models.product import MAX_STOCK, Product
from agromarket.db.models.sales import Sale, SaleItem
from agromarket.repositories.product_repository import ProductRepository
from agromarket.repositories.sale_repository import SaleRepository
from agromarket.services.base_service import BaseService
from agromarket.services.product_service import ProductService

logger = logging.getLogger(__name__)

_OUTCOME_VERBS = {
    PaymentOutcome.COMPLETED: "complete payment of",
    PaymentOutcome.FAILED: "fail payment of",
}


def merge_cart_lines(items: Iterable[Any]) -> "OrderedDict[int, int]":
    """
    Normalize cart lines into an ordered product_id -> quantity mapping.

    Lines may be (product_id, quantity) pairs, dicts or objects with
    `product_id` and `quantity` attributes. Lines for the same product are
    merged by summing their quantities, keeping first-appearance order.

    Raises:
        ValidationException: If the cart is empty or a line is malformed
    """
    merged: "OrderedDict[int, int]" = OrderedDict()
    errors: Dict[str, List[str]] = {}

    for index, line in enumerate(items or []):
        if isinstance(line, dict):
            product_id, quantity = line.get("product_id"), line.get("quantity")
        elif isinstance(line, (tuple, list)) and len(line) == 2:
            product_id, quantity = line
        else:
            product_id = getattr(line, "product_id", None)
            quantity = getattr(line, "quantity", None)

        if isinstance(product_id, bool) or not isinstance(product_id, int):
            errors.setdefault(f"items[{index}].product_id", []).append("must be an integer")
            continue
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors.setdefault(f"items[{index}].quantity", []).append("must be a positive integer")
            continue
        merged[product_id] = merged.get(product_id, 0) + quantity
        if merged[product_id] > MAX_STOCK:
            errors.setdefault(f"items[{index}].quantity", []).append(f"total cannot exceed {MAX_STOCK}")

    if errors:
        raise ValidationException("Invalid cart lines", errors)
    if not merged:
        raise ValidationException("Cart is empty", {"items": ["at least one line is required"]})
    return merged


class SaleService(BaseService):
    """
    Transaction coordinator for sales.

    The only component that mutates stock as part of a sale. Collaborates
    with ProductService for the stock mutation helper, sharing its session.
    """

    def __init__(
        self,
        session: Session,
        event_bus: Optional[EventBus] = None,
        repository: Optional[SaleRepository] = None,
        product_service: Optional[ProductService] = None,
    ):
        super().__init__(session, event_bus=event_bus)
        self.repository = repository or SaleRepository(session)
        self.product_service = product_service or ProductService(session, event_bus=event_bus)
        self.product_repository: ProductRepository = self.product_service.repository

    # --- Reads ---

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.repository.get_by_id(sale_id)
        if sale is None:
            raise SaleNotFoundException(sale_id)
        return sale

    def list_sales_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 100) -> List[Sale]:
        return self.repository.list_by_buyer(buyer_id, skip=skip, limit=limit)

    def list_recent_sales(self, limit: int = 5) -> List[Sale]:
        return self.repository.list_recent(limit=limit)

    # --- Checkout ---

    def create_sale(self, buyer_id: int, items: Iterable[Any], payment_method: str) -> Sale:
        """
        Convert a cart into a pending sale, decrementing stock atomically.

        Args:
            buyer_id: ID of the purchasing user
            items: Ordered cart lines of (product_id, quantity)
            payment_method: Payment method label

        Returns:
            The persisted sale with its items

        Raises:
            ValidationException: For an empty cart, bad lines or payment method
            ProductNotFoundException: If a product is missing or inactive
            InsufficientStockException: If any line exceeds available stock
        """
        lines = merge_cart_lines(items)
        payment_method = self._validate_payment_method(payment_method)

        with self.transaction("create_sale"):
            products = self.product_repository.lock_many(lines.keys())
            self._check_availability(lines, products)

            sale = Sale(buyer_id=buyer_id, payment_method=payment_method, status=SaleStatus.PENDING)
            total = Decimal("0.00")
            for position, (product_id, quantity) in enumerate(lines.items(), start=1):
                product = products[product_id]
                subtotal = (product.price * quantity).quantize(Decimal("0.01"))
                sale.items.append(
                    SaleItem(
                        position=position,
                        product_id=product_id,
                        product_name=product.name,
                        quantity=quantity,
                        unit_price=product.price,
                        subtotal=subtotal,
                    )
                )
                total += subtotal
            sale.total = total
            self.repository.add(sale)

            for product_id, quantity in lines.items():
                self.product_service.apply_delta(
                    products[product_id],
                    -quantity,
                    InventoryLogType.SALE,
                    note=f"Sale #{sale.id}",
                    actor_id=buyer_id,
                    sale_id=sale.id,
                )

            self._emit(
                SaleCreated(sale_id=sale.id, buyer_id=buyer_id, total=sale.total, item_count=len(sale.items))
            )

        logger.info(
            f"Created sale {sale.id} for buyer {buyer_id}: {len(lines)} lines, total {sale.total}"
        )
        return sale

    def _check_availability(self, lines: "OrderedDict[int, int]", products: Dict[int, Product]) -> None:
        for product_id, quantity in lines.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundException(product_id)
            if quantity > product.stock:
                raise InsufficientStockException(product_id, quantity, product.stock)

    @staticmethod
    def _validate_payment_method(payment_method: Any) -> str:
        method = str(payment_method or "").strip().lower()
        if method not in settings.ALLOWED_PAYMENT_METHODS:
            allowed = ", ".join(settings.ALLOWED_PAYMENT_METHODS)
            raise ValidationException(
                f"Unsupported payment method '{payment_method}'",
                {"payment_method": [f"must be one of: {allowed}"]},
            )
        return method

    # --- Payment and refunds ---

    def confirm_payment(
        self, sale_id: int, outcome: Any, transaction_ref: Optional[str] = None
    ) -> Sale:
        """
        Record the payment outcome of a pending sale.

        Confirming again with the outcome already recorded returns the sale
        unchanged. A failed payment puts the sale's units back in stock as
        `return` entries when RELEASE_STOCK_ON_PAYMENT_FAILURE is set.

        Raises:
            ValidationException: If outcome is not completed/failed
            SaleNotFoundException: If the sale does not exist
            InvalidStateException: If the sale was settled with another outcome
        """
        try:
            outcome = PaymentOutcome(outcome)
        except ValueError:
            raise ValidationException(
                f"Invalid payment outcome '{outcome}'",
                {"outcome": ["must be 'completed' or 'failed'"]},
            )

        with self.transaction("confirm_payment"):
            sale = self.repository.lock_by_id(sale_id)
            if sale is None:
                raise SaleNotFoundException(sale_id)

            if sale.status == outcome.sale_status:
                logger.info(f"Sale {sale_id} already {outcome.value}; nothing to do")
                return sale
            if sale.status != SaleStatus.PENDING:
                raise InvalidStateException(sale_id, SaleStatus(sale.status).value, _OUTCOME_VERBS[outcome])

            previous_status = SaleStatus(sale.status)
            sale.status = outcome.sale_status
            if transaction_ref:
                sale.transaction_ref = transaction_ref

            if outcome is PaymentOutcome.FAILED and settings.RELEASE_STOCK_ON_PAYMENT_FAILURE:
                self._restock_items(sale, InventoryLogType.RETURN, note=f"Payment failed for sale #{sale.id}")

            self.session.flush()
            self._emit(
                PaymentStatusChanged(
                    sale_id=sale.id,
                    previous_status=previous_status.value,
                    new_status=outcome.sale_status.value,
                    transaction_ref=sale.transaction_ref,
                )
            )

        logger.info(f"Sale {sale_id} payment {outcome.value} (ref={transaction_ref})")
        return sale

    def refund_sale(self, sale_id: int) -> Sale:
        """
        Refund a completed sale, restoring stock for every item.

        Products deactivated since the sale still get their units back.

        Raises:
            SaleNotFoundException: If the sale does not exist
            InvalidStateException: If the sale is not completed
        """
        with self.transaction("refund_sale"):
            sale = self.repository.lock_by_id(sale_id)
            if sale is None:
                raise SaleNotFoundException(sale_id)
            if sale.status != SaleStatus.COMPLETED:
                raise InvalidStateException(sale_id, SaleStatus(sale.status).value, "refund")

            self._restock_items(sale, InventoryLogType.REFUND, note=f"Refund of sale #{sale.id}")
            sale.status = SaleStatus.REFUNDED
            self.session.flush()
            self._emit(SaleRefunded(sale_id=sale.id, total=sale.total))

        logger.info(f"Refunded sale {sale_id}: total {sale.total}")
        return sale

    def _restock_items(self, sale: Sale, log_type: InventoryLogType, note: str) -> None:
        products = self.product_repository.lock_many(item.product_id for item in sale.items)
        for item in sale.items:
            self.product_service.apply_delta(
                products[item.product_id],
                item.quantity,
                log_type,
                note=note,
                actor_id=sale.buyer_id,
                sale_id=sale.id,
            )
