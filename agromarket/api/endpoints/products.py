# File: agromarket/api/endpoints/products.py
"""
Product API endpoints for AgroMarket.

Catalog reads, product administration and manual stock adjustments.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from agromarket.api.deps import get_actor_id, get_product_service
from agromarket.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    StockAdjustmentRequest,
    StockChangeResponse,
)
from agromarket.services.product_service import ProductService

router = APIRouter()


@router.get("", response_model=List[ProductResponse])
def list_products(
    *,
    category: Optional[str] = Query(None, description="Filter by category"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    product_service: ProductService = Depends(get_product_service),
) -> List[ProductResponse]:
    """Active products, newest first."""
    return product_service.list_products(category=category, skip=skip, limit=limit)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    *,
    product_in: ProductCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """
    Create a new product.

    Args:
        product_in: Product data; the starting stock is logged as `initial`
        actor_id: Optional acting administrator
        product_service: Product service

    Returns:
        Created product
    """
    return product_service.create_product(product_in.model_dump(), actor_id=actor_id)


@router.get("/meta/categories", response_model=List[str])
def list_categories(
    product_service: ProductService = Depends(get_product_service),
) -> List[str]:
    return product_service.list_categories()


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    *,
    product_id: int = Path(..., ge=1, description="The ID of the product"),
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    return product_service.get_product(product_id)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    *,
    product_id: int = Path(..., ge=1, description="The ID of the product to update"),
    product_in: ProductUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """
    Update a product. Only the fields sent are changed; a stock change is
    written to the inventory log.
    """
    return product_service.update_product(
        product_id, product_in.model_dump(exclude_unset=True), actor_id=actor_id
    )


@router.delete("/{product_id}", response_model=ProductResponse)
def delete_product(
    *,
    product_id: int = Path(..., ge=1, description="The ID of the product to deactivate"),
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """Soft delete: the product becomes inactive, its stock and history are kept."""
    return product_service.soft_delete_product(product_id)


@router.patch("/{product_id}/stock", response_model=StockChangeResponse)
def adjust_stock(
    *,
    product_id: int = Path(..., ge=1, description="The ID of the product"),
    adjustment: StockAdjustmentRequest,
    actor_id: Optional[int] = Depends(get_actor_id),
    product_service: ProductService = Depends(get_product_service),
) -> StockChangeResponse:
    return product_service.adjust_stock(
        product_id,
        adjustment.delta,
        adjustment.type,
        note=adjustment.note,
        actor_id=actor_id,
    )
