# tests/test_db_models.py
from decimal import Decimal

import pytest
from sqlalchemy import inspect, select

from agromarket.db.models import (
    InventoryLogEntry,
    InventoryLogType,
    Product,
    Sale,
    SaleItem,
    SaleStatus,
)
from agromarket.db.models.base import ModelValidationError


def test_tables_created(engine):
    tables = set(inspect(engine).get_table_names())
    assert {"products", "inventory_log", "sales", "sale_items"} <= tables


def test_product_rejects_negative_stock_and_price():
    product = Product(name="Tomatoes", category="vegetables", price=Decimal("1.00"))
    with pytest.raises(ModelValidationError):
        product.stock = -1
    with pytest.raises(ModelValidationError):
        product.price = Decimal("-0.01")


def test_product_price_is_quantized():
    product = Product(name="Tomatoes", category="vegetables", price="1.5")
    assert product.price == Decimal("1.50")


def test_low_stock_hybrid(db, make_product):
    low = make_product(stock=5, min_stock=10)
    make_product(stock=20, min_stock=10)

    assert low.is_low_stock
    ids = db.execute(select(Product.id).where(Product.is_low_stock)).scalars().all()
    assert ids == [low.id]


def test_log_entry_type_directions():
    assert InventoryLogType.SALE.direction == -1
    assert InventoryLogType.ADJUSTMENT.direction == 0
    assert InventoryLogType.REFUND.direction == 1
    assert InventoryLogType.SALE not in InventoryLogType.manual_types()


def test_log_entry_must_match_its_quantity(db, make_product):
    product = make_product(stock=5)
    entry = InventoryLogEntry(
        product_id=product.id,
        type=InventoryLogType.RESTOCK,
        quantity=3,
        previous_stock=5,
        new_stock=7,
    )
    db.add(entry)
    with pytest.raises(ModelValidationError):
        db.flush()
    db.rollback()


def test_sale_entry_cannot_increase_stock(db, make_product):
    product = make_product(stock=5)
    entry = InventoryLogEntry(
        product_id=product.id,
        type=InventoryLogType.SALE,
        quantity=2,
        previous_stock=5,
        new_stock=7,
    )
    db.add(entry)
    with pytest.raises(ModelValidationError):
        db.flush()
    db.rollback()


def test_log_entries_are_append_only(db, make_product):
    product = make_product(stock=5)
    entry = db.execute(
        select(InventoryLogEntry).where(InventoryLogEntry.product_id == product.id)
    ).scalar_one()

    entry.note = "rewritten"
    with pytest.raises(ModelValidationError):
        db.flush()
    db.rollback()

    entry = db.get(InventoryLogEntry, entry.id)
    db.delete(entry)
    with pytest.raises(ModelValidationError):
        db.flush()
    db.rollback()


def test_items_of_settled_sale_are_immutable(db, make_product, sale_service):
    product = make_product(stock=5)
    sale = sale_service.create_sale(1, [(product.id, 2)], "cash")
    sale_service.confirm_payment(sale.id, "completed")

    item = db.get(SaleItem, sale.items[0].id)
    item.quantity = 1
    with pytest.raises(ModelValidationError):
        db.flush()
    db.rollback()


def test_items_of_pending_sale_can_change(db, make_product, sale_service):
    product = make_product(stock=5)
    sale = sale_service.create_sale(1, [(product.id, 2)], "cash")

    sale = db.get(Sale, sale.id)
    assert sale.status == SaleStatus.PENDING
    item = sale.items[0]
    item.product_name = "Renamed"
    db.flush()
    db.rollback()


def test_sale_to_dict_includes_items(make_product, sale_service):
    product = make_product(stock=5, price="3.00")
    sale = sale_service.create_sale(1, [(product.id, 2)], "card")

    data = sale.to_dict()
    assert data["status"] == "pending"
    assert data["total"] == "6.00"
    assert data["items"][0]["subtotal"] == "6.00"
