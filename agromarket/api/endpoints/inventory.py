# File: agromarket/api/endpoints/inventory.py
"""
Inventory API endpoints for AgroMarket.

Read-only views over stock: low-stock alerts, per-product history, the admin
dashboard, daily revenue and catalog statistics.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Query

from agromarket.api.deps import get_stock_query_service
from agromarket.schemas.inventory import (
    DailyRevenue,
    DashboardSnapshot,
    InventoryLogResponse,
    StockReconciliationResponse,
)
from agromarket.schemas.product import ProductResponse, ProductStatistics
from agromarket.services.stock_query_service import StockQueryService

router = APIRouter()


@router.get("/low-stock", response_model=List[ProductResponse])
def list_low_stock(
    query_service: StockQueryService = Depends(get_stock_query_service),
) -> List[ProductResponse]:
    """Active products below their reorder threshold, lowest stock first."""
    return query_service.list_low_stock()


@router.get("/dashboard", response_model=DashboardSnapshot)
def get_dashboard(
    *,
    recent: int = Query(5, ge=1, le=100, description="Number of recent sales to include"),
    query_service: StockQueryService = Depends(get_stock_query_service),
) -> DashboardSnapshot:
    return query_service.get_dashboard_snapshot(recent_limit=recent)


@router.get("/revenue", response_model=List[DailyRevenue])
def get_revenue_by_day(
    query_service: StockQueryService = Depends(get_stock_query_service),
) -> List[DailyRevenue]:
    """Completed revenue per day, oldest first."""
    return query_service.get_revenue_by_day()


@router.get("/statistics", response_model=ProductStatistics)
def get_statistics(
    query_service: StockQueryService = Depends(get_stock_query_service),
) -> ProductStatistics:
    return query_service.get_product_statistics()


@router.get("/{product_id}/history", response_model=List[InventoryLogResponse])
def get_inventory_history(
    *,
    product_id: int = Path(..., ge=1, description="The ID of the product"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of entries"),
    query_service: StockQueryService = Depends(get_stock_query_service),
) -> List[InventoryLogResponse]:
    """Inventory log entries of a product, newest first."""
    return query_service.get_inventory_history(product_id, limit=limit)


@router.get("/{product_id}/reconciliation", response_model=StockReconciliationResponse)
def reconcile_stock(
    *,
    product_id: int = Path(..., ge=1, description="The ID of the product"),
    query_service: StockQueryService = Depends(get_stock_query_service),
) -> StockReconciliationResponse:
    return query_service.reconcile_stock(product_id)
