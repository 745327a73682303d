# tests/conftest.py
from decimal import Decimal

import pytest

from agromarket.core.events import EventBus
from agromarket.db.session import create_db_engine, create_session_factory, init_db
from agromarket.services.product_service import ProductService
from agromarket.services.sale_service import SaleService
from agromarket.services.stock_query_service import StockQueryService


@pytest.fixture()
def engine(tmp_path):
    """A fresh file-backed SQLite database per test."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'agromarket_test.db'}", lock_timeout=5.0, echo=False)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def event_bus():
    return EventBus()


@pytest.fixture()
def product_service(db, event_bus):
    return ProductService(db, event_bus=event_bus)


@pytest.fixture()
def sale_service(db, event_bus):
    return SaleService(db, event_bus=event_bus)


@pytest.fixture()
def query_service(db):
    return StockQueryService(db)


@pytest.fixture()
def make_product(product_service):
    """Create a product with sensible defaults."""
    counter = {"n": 0}

    def _make(stock=10, price="2.50", min_stock=10, category="vegetables", name=None):
        counter["n"] += 1
        return product_service.create_product(
            {
                "name": name or f"Product {counter['n']}",
                "category": category,
                "price": Decimal(price),
                "stock": stock,
                "min_stock": min_stock,
            }
        )

    return _make
