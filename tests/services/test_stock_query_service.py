# tests/services/test_stock_query_service.py
from decimal import Decimal

import pytest
from sqlalchemy import update

from agromarket.core.exceptions import ProductNotFoundException
from agromarket.db.models import Product
from agromarket.db.models.enums import InventoryLogType


def test_low_stock_ordering(query_service, product_service, make_product):
    b = make_product(stock=4, min_stock=10)
    a = make_product(stock=1, min_stock=5)
    c = make_product(stock=4, min_stock=5)
    make_product(stock=50, min_stock=10)
    hidden = make_product(stock=0, min_stock=10)
    product_service.soft_delete_product(hidden.id)

    assert [p.id for p in query_service.list_low_stock()] == [a.id, b.id, c.id]


def test_iter_low_stock_is_batched_and_restartable(query_service, make_product):
    expected = [make_product(stock=i, min_stock=10).id for i in range(1, 6)]

    first = [p.id for p in query_service.iter_low_stock(batch_size=2)]
    second = [p.id for p in query_service.iter_low_stock(batch_size=2)]

    assert first == expected
    assert second == expected


def test_inventory_history_newest_first(query_service, product_service, make_product):
    product = make_product(stock=10)
    product_service.adjust_stock(product.id, 5, "restock")
    product_service.adjust_stock(product.id, -2, "adjustment")

    history = query_service.get_inventory_history(product.id)
    assert [e.type for e in history] == [
        InventoryLogType.ADJUSTMENT,
        InventoryLogType.RESTOCK,
        InventoryLogType.INITIAL,
    ]
    assert len(query_service.get_inventory_history(product.id, limit=1)) == 1


def test_inventory_history_of_unknown_product(query_service):
    with pytest.raises(ProductNotFoundException):
        query_service.get_inventory_history(31337)


def test_dashboard_snapshot(query_service, sale_service, make_product):
    apples = make_product(stock=10, price="2.00")
    make_product(stock=3, min_stock=10)
    paid = sale_service.create_sale(1, [(apples.id, 2)], "card")
    sale_service.confirm_payment(paid.id, "completed")
    refunded = sale_service.create_sale(2, [(apples.id, 1)], "card")
    sale_service.confirm_payment(refunded.id, "completed")
    sale_service.refund_sale(refunded.id)
    pending = sale_service.create_sale(3, [(apples.id, 4)], "cash")

    snapshot = query_service.get_dashboard_snapshot(recent_limit=2)

    assert snapshot["total_products"] == 2
    assert snapshot["total_revenue"] == Decimal("4.00")
    assert snapshot["low_stock_count"] == 2
    assert [s.id for s in snapshot["recent_sales"]] == [pending.id, refunded.id]


def test_revenue_by_day_counts_completed_sales_only(query_service, sale_service, make_product):
    apples = make_product(stock=20, price="2.00")
    first = sale_service.create_sale(1, [(apples.id, 2)], "card")
    sale_service.confirm_payment(first.id, "completed")
    second = sale_service.create_sale(2, [(apples.id, 3)], "card")
    sale_service.confirm_payment(second.id, "completed")
    refunded = sale_service.create_sale(3, [(apples.id, 1)], "card")
    sale_service.confirm_payment(refunded.id, "completed")
    sale_service.refund_sale(refunded.id)
    sale_service.create_sale(4, [(apples.id, 5)], "cash")

    assert query_service.get_revenue_by_day() == [
        {"day": first.created_at.date(), "revenue": Decimal("10.00")}
    ]


def test_product_statistics(query_service, product_service, make_product):
    make_product(stock=10, price="1.50", category="fruit")
    make_product(stock=0, price="4.00", category="fruit")
    make_product(stock=2, price="10.00", category="honey")
    gone = make_product(stock=100, price="1.00", category="honey")
    product_service.soft_delete_product(gone.id)

    stats = query_service.get_product_statistics()

    assert stats["product_count"] == 3
    assert stats["total_units"] == 12
    assert stats["total_value"] == Decimal("35.00")
    assert stats["out_of_stock"] == 1
    assert stats["by_category"] == {"fruit": 2, "honey": 1}


def test_reconcile_detects_unlogged_change(db, query_service, make_product):
    product = make_product(stock=7)
    assert query_service.reconcile_stock(product.id).is_consistent

    db.execute(update(Product).where(Product.id == product.id).values(stock=9))
    db.commit()
    db.expire_all()

    result = query_service.reconcile_stock(product.id)
    assert not result.is_consistent
    assert result.current_stock == 9
    assert result.logged_stock == 7
    assert result.difference == 2
