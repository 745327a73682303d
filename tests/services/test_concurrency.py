# tests/services/test_concurrency.py
import threading

import pytest

from agromarket.core.exceptions import BusyException, InsufficientStockException
from agromarket.db.session import begin_write, create_db_engine, create_session_factory, init_db
from agromarket.services.product_service import ProductService
from agromarket.services.sale_service import SaleService
from agromarket.services.stock_query_service import StockQueryService


def _run_checkouts(session_factory, product_id, buyers, quantity=1):
    """Run one checkout per buyer, each on its own thread and session."""
    barrier = threading.Barrier(len(buyers))
    results = {}

    def checkout(buyer_id):
        session = session_factory()
        try:
            barrier.wait()
            sale = SaleService(session).create_sale(buyer_id, [(product_id, quantity)], "cash")
            results[buyer_id] = sale.id
        except Exception as e:  # collected and asserted by the test
            results[buyer_id] = e
        finally:
            session.close()

    threads = [threading.Thread(target=checkout, args=(buyer_id,)) for buyer_id in buyers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


def test_last_unit_sold_once(session_factory, make_product):
    product = make_product(stock=1)

    results = _run_checkouts(session_factory, product.id, buyers=[1, 2])

    successes = [r for r in results.values() if isinstance(r, int)]
    failures = [r for r in results.values() if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockException)
    assert failures[0].available == 0

    with session_factory() as session:
        assert StockQueryService(session).get_current_stock(product.id) == 0


def test_concurrent_checkouts_never_oversell(session_factory, make_product):
    product = make_product(stock=5)

    results = _run_checkouts(session_factory, product.id, buyers=list(range(1, 9)))

    successes = [r for r in results.values() if isinstance(r, int)]
    failures = [r for r in results.values() if isinstance(r, Exception)]
    assert len(successes) == 5
    assert len(failures) == 3
    assert all(isinstance(f, InsufficientStockException) for f in failures)

    with session_factory() as session:
        query_service = StockQueryService(session)
        assert query_service.get_current_stock(product.id) == 0
        reconciliation = query_service.reconcile_stock(product.id)
        assert reconciliation.is_consistent
        assert reconciliation.entry_count == 6


def test_concurrent_adjustments_are_all_applied(session_factory, make_product):
    product = make_product(stock=10)
    barrier = threading.Barrier(6)
    errors = []

    def restock():
        session = session_factory()
        try:
            barrier.wait()
            ProductService(session).adjust_stock(product.id, 2, "restock")
        except Exception as e:  # collected and asserted by the test
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=restock) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    with session_factory() as session:
        assert StockQueryService(session).get_current_stock(product.id) == 22


def test_lock_timeout_raises_busy(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'busy.db'}", lock_timeout=0.2)
    init_db(bind=engine)
    factory = create_session_factory(engine)

    with factory() as setup:
        product = ProductService(setup).create_product(
            {"name": "Eggs", "category": "dairy", "price": "0.30", "stock": 12}
        )

    blocker = factory()
    begin_write(blocker, lock_timeout=0.2)
    try:
        with factory() as session:
            with pytest.raises(BusyException):
                ProductService(session).adjust_stock(product.id, 1, "restock")
    finally:
        blocker.rollback()
        blocker.close()

    with factory() as session:
        assert StockQueryService(session).get_current_stock(product.id) == 12
    engine.dispose()
