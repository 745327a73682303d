# tests/services/test_sale_service.py
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from agromarket.core.config import settings
from agromarket.core.events import PaymentStatusChanged, SaleCreated, SaleRefunded
from agromarket.core.exceptions import (
    InsufficientStockException,
    InvalidStateException,
    PersistenceException,
    ProductNotFoundException,
    SaleNotFoundException,
    ValidationException,
)
from agromarket.db.models import Sale
from agromarket.db.models.enums import InventoryLogType, SaleStatus
from agromarket.db.models.product import MAX_STOCK
from agromarket.repositories.inventory_log_repository import InventoryLogRepository
from agromarket.services.sale_service import merge_cart_lines


def _sale_count(db):
    return db.execute(select(func.count(Sale.id))).scalar_one()


def _entries_for_sale(db, sale_id):
    return InventoryLogRepository(db).list_for_sale(sale_id)


def test_merge_cart_lines_keeps_first_appearance_order():
    merged = merge_cart_lines([(3, 1), {"product_id": 1, "quantity": 2}, (3, 4)])
    assert list(merged.items()) == [(3, 5), (1, 2)]


@pytest.mark.parametrize(
    "items",
    [
        [],
        None,
        [(1, 0)],
        [(1, -2)],
        [("a", 1)],
        [(1, 1.5)],
        [(1, 2**63)],
        [(1, MAX_STOCK), (1, 1)],
    ],
)
def test_merge_cart_lines_rejects_bad_carts(items):
    with pytest.raises(ValidationException):
        merge_cart_lines(items)


def test_create_sale(db, sale_service, make_product, query_service):
    tomatoes = make_product(stock=10, price="2.50", name="Tomatoes")
    honey = make_product(stock=4, price="7.99", name="Honey")

    sale = sale_service.create_sale(21, [(honey.id, 2), (tomatoes.id, 3)], "card")

    assert sale.id is not None
    assert sale.status == SaleStatus.PENDING
    assert sale.buyer_id == 21
    assert sale.payment_method == "card"
    assert sale.total == Decimal("23.48")
    assert sale.total == sale.items_total
    assert [(i.position, i.product_name, i.quantity, i.unit_price, i.subtotal) for i in sale.items] == [
        (1, "Honey", 2, Decimal("7.99"), Decimal("15.98")),
        (2, "Tomatoes", 3, Decimal("2.50"), Decimal("7.50")),
    ]
    assert query_service.get_current_stock(tomatoes.id) == 7
    assert query_service.get_current_stock(honey.id) == 2

    entries = _entries_for_sale(db, sale.id)
    assert {(e.product_id, e.type, e.previous_stock, e.new_stock) for e in entries} == {
        (honey.id, InventoryLogType.SALE, 4, 2),
        (tomatoes.id, InventoryLogType.SALE, 10, 7),
    }
    assert all(e.actor_id == 21 for e in entries)


def test_create_sale_merges_duplicate_lines(sale_service, make_product, query_service):
    product = make_product(stock=10, price="1.00")

    sale = sale_service.create_sale(1, [(product.id, 2), (product.id, 3)], "cash")

    assert len(sale.items) == 1
    assert sale.items[0].quantity == 5
    assert query_service.get_current_stock(product.id) == 5


def test_oversold_line_changes_nothing(db, sale_service, make_product, query_service):
    plenty = make_product(stock=10)
    scarce = make_product(stock=1)

    with pytest.raises(InsufficientStockException) as exc_info:
        sale_service.create_sale(1, [(plenty.id, 2), (scarce.id, 2)], "cash")

    assert exc_info.value.product_id == scarce.id
    assert exc_info.value.requested == 2
    assert exc_info.value.available == 1
    assert query_service.get_current_stock(plenty.id) == 10
    assert query_service.get_current_stock(scarce.id) == 1
    assert _sale_count(db) == 0
    assert len(query_service.get_inventory_history(plenty.id)) == 1


def test_storage_failure_mid_checkout_leaves_store_unchanged(db, sale_service, make_product, query_service, event_bus):
    first = make_product(stock=5)
    second = make_product(stock=5)
    db.execute(
        text(
            "CREATE TRIGGER reject_sale_log BEFORE INSERT ON inventory_log "
            f"WHEN NEW.product_id = {second.id} AND NEW.type = 'sale' "
            "BEGIN SELECT RAISE(ABORT, 'disk quota exceeded'); END"
        )
    )
    db.commit()
    received = []
    event_bus.subscribe(SaleCreated, received.append)

    with pytest.raises(PersistenceException):
        sale_service.create_sale(1, [(first.id, 2), (second.id, 1)], "cash")

    for product in (first, second):
        assert query_service.get_current_stock(product.id) == 5
        assert len(query_service.get_inventory_history(product.id)) == 1
        assert query_service.reconcile_stock(product.id).is_consistent
    assert _sale_count(db) == 0
    assert received == []


def test_unknown_or_inactive_product_aborts_checkout(db, sale_service, product_service, make_product):
    product = make_product(stock=10)

    with pytest.raises(ProductNotFoundException):
        sale_service.create_sale(1, [(product.id, 1), (9999, 1)], "cash")

    product_service.soft_delete_product(product.id)
    with pytest.raises(ProductNotFoundException):
        sale_service.create_sale(1, [(product.id, 1)], "cash")

    assert _sale_count(db) == 0


def test_invalid_payment_method(sale_service, make_product):
    product = make_product(stock=10)
    with pytest.raises(ValidationException):
        sale_service.create_sale(1, [(product.id, 1)], "barter")


def test_empty_cart_is_rejected(sale_service):
    with pytest.raises(ValidationException):
        sale_service.create_sale(1, [], "cash")


def test_sale_keeps_price_snapshot(sale_service, product_service, make_product):
    product = make_product(stock=10, price="4.00")
    sale = sale_service.create_sale(1, [(product.id, 2)], "cash")

    product_service.update_product(product.id, {"price": "9.00", "name": "Renamed"})

    reloaded = sale_service.get_sale(sale.id)
    assert reloaded.total == Decimal("8.00")
    assert reloaded.items[0].unit_price == Decimal("4.00")
    assert reloaded.items[0].product_name != "Renamed"


def test_confirm_payment_is_idempotent(sale_service, make_product, event_bus):
    changes = []
    event_bus.subscribe(PaymentStatusChanged, changes.append)
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 1)], "card")

    first = sale_service.confirm_payment(sale.id, "completed", transaction_ref="tx-1")
    second = sale_service.confirm_payment(sale.id, "completed", transaction_ref="tx-2")

    assert first.status == SaleStatus.COMPLETED
    assert second.status == SaleStatus.COMPLETED
    assert second.transaction_ref == "tx-1"
    assert len(changes) == 1


def test_conflicting_payment_outcome(sale_service, make_product):
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 1)], "card")
    sale_service.confirm_payment(sale.id, "completed")

    with pytest.raises(InvalidStateException) as exc_info:
        sale_service.confirm_payment(sale.id, "failed")
    assert exc_info.value.current_status == "completed"


def test_confirm_payment_rejects_bad_input(sale_service, make_product):
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 1)], "card")

    with pytest.raises(ValidationException):
        sale_service.confirm_payment(sale.id, "refunded")
    with pytest.raises(SaleNotFoundException):
        sale_service.confirm_payment(12345, "completed")


def test_failed_payment_releases_stock_once(db, sale_service, make_product, query_service):
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 3)], "card")

    sale_service.confirm_payment(sale.id, "failed")
    sale_service.confirm_payment(sale.id, "failed")

    assert query_service.get_current_stock(product.id) == 10
    entries = _entries_for_sale(db, sale.id)
    assert [(e.type, e.quantity) for e in entries] == [
        (InventoryLogType.SALE, 3),
        (InventoryLogType.RETURN, 3),
    ]


def test_failed_payment_keeps_stock_when_release_disabled(monkeypatch, sale_service, make_product, query_service):
    monkeypatch.setattr(settings, "RELEASE_STOCK_ON_PAYMENT_FAILURE", False)
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 3)], "card")

    failed = sale_service.confirm_payment(sale.id, "failed")

    assert failed.status == SaleStatus.FAILED
    assert query_service.get_current_stock(product.id) == 7


def test_refund_restores_stock(db, sale_service, make_product, query_service, event_bus):
    refunds = []
    event_bus.subscribe(SaleRefunded, refunds.append)
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 2)], "cash")
    sale_service.confirm_payment(sale.id, "completed")
    assert query_service.get_current_stock(product.id) == 8

    refunded = sale_service.refund_sale(sale.id)

    assert refunded.status == SaleStatus.REFUNDED
    assert query_service.get_current_stock(product.id) == 10
    refund_entries = [e for e in _entries_for_sale(db, sale.id) if e.type == InventoryLogType.REFUND]
    assert len(refund_entries) == 1
    assert (refund_entries[0].quantity, refund_entries[0].previous_stock, refund_entries[0].new_stock) == (2, 8, 10)
    assert len(refunds) == 1

    with pytest.raises(InvalidStateException):
        sale_service.refund_sale(sale.id)
    assert query_service.get_current_stock(product.id) == 10


def test_refund_requires_completed_sale(sale_service, make_product):
    product = make_product(stock=10)
    sale = sale_service.create_sale(1, [(product.id, 2)], "cash")

    with pytest.raises(InvalidStateException):
        sale_service.refund_sale(sale.id)
    with pytest.raises(SaleNotFoundException):
        sale_service.refund_sale(777)


def test_refund_restores_stock_of_inactive_product(sale_service, product_service, make_product):
    product = make_product(stock=5)
    sale = sale_service.create_sale(1, [(product.id, 2)], "cash")
    sale_service.confirm_payment(sale.id, "completed")
    product_service.soft_delete_product(product.id)

    sale_service.refund_sale(sale.id)

    assert product_service.get_product(product.id, include_inactive=True).stock == 5


def test_selling_low_stock_product(db, sale_service, make_product, query_service):
    product = make_product(stock=5, min_stock=10)
    assert [p.id for p in query_service.list_low_stock()] == [product.id]

    sale = sale_service.create_sale(1, [(product.id, 1)], "cash")

    assert query_service.get_current_stock(product.id) == 4
    entries = _entries_for_sale(db, sale.id)
    assert [(e.type, e.previous_stock, e.new_stock) for e in entries] == [(InventoryLogType.SALE, 5, 4)]
    assert [p.id for p in query_service.list_low_stock()] == [product.id]


def test_stock_always_matches_log(sale_service, product_service, make_product, query_service):
    a = make_product(stock=20)
    b = make_product(stock=6)

    s1 = sale_service.create_sale(1, [(a.id, 3), (b.id, 2)], "cash")
    s2 = sale_service.create_sale(2, [(a.id, 5)], "card")
    sale_service.confirm_payment(s1.id, "completed")
    sale_service.confirm_payment(s2.id, "failed")
    sale_service.refund_sale(s1.id)
    product_service.adjust_stock(b.id, 4, "restock")
    product_service.update_product(a.id, {"stock": 2})
    with pytest.raises(InsufficientStockException):
        sale_service.create_sale(3, [(a.id, 5)], "cash")

    for product in (a, b):
        result = query_service.reconcile_stock(product.id)
        assert result.is_consistent
        assert result.current_stock >= 0


def test_sale_created_event(sale_service, make_product, event_bus):
    created = []
    event_bus.subscribe(SaleCreated, created.append)
    product = make_product(stock=3, price="1.25")

    sale = sale_service.create_sale(9, [(product.id, 2)], "cash")

    assert len(created) == 1
    assert created[0].sale_id == sale.id
    assert created[0].total == Decimal("2.50")
    assert created[0].item_count == 1


def test_list_sales(sale_service, make_product):
    product = make_product(stock=10)
    first = sale_service.create_sale(1, [(product.id, 1)], "cash")
    sale_service.create_sale(2, [(product.id, 1)], "cash")
    third = sale_service.create_sale(1, [(product.id, 1)], "cash")

    assert [s.id for s in sale_service.list_sales_by_buyer(1)] == [third.id, first.id]
    assert len(sale_service.list_recent_sales(limit=2)) == 2
    with pytest.raises(SaleNotFoundException):
        sale_service.get_sale(404)
