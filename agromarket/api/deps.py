# File: agromarket/api/deps.py
"""
FastAPI dependencies for AgroMarket.

Provides dependency functions for database sessions, the acting user and
service injection for API routes.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from agromarket.core.events import global_event_bus
from agromarket.db.session import get_db
from agromarket.services.product_service import ProductService
from agromarket.services.sale_service import SaleService
from agromarket.services.stock_query_service import StockQueryService


def get_actor_id(x_user_id: Optional[str] = Header(None)) -> Optional[int]:
    """
    Read the acting user's id from the X-User-Id header.

    Authentication happens upstream; this service trusts the header.
    """
    if x_user_id is None:
        return None
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id header must be an integer",
        )


def require_actor_id(actor_id: Optional[int] = Depends(get_actor_id)) -> int:
    if actor_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    return actor_id


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db, event_bus=global_event_bus)


def get_sale_service(db: Session = Depends(get_db)) -> SaleService:
    return SaleService(db, event_bus=global_event_bus)


def get_stock_query_service(db: Session = Depends(get_db)) -> StockQueryService:
    return StockQueryService(db)
