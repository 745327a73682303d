# File: agromarket/api/endpoints/sales.py
"""
Sales API endpoints for AgroMarket.

This module provides endpoints for checkout, payment confirmation, refunds
and sale lookups. Domain exceptions are mapped to HTTP responses by the
application's exception handlers.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from agromarket.api.deps import get_sale_service, require_actor_id
from agromarket.schemas.sale import PaymentConfirmation, SaleCreate, SaleResponse
from agromarket.services.sale_service import SaleService

router = APIRouter()


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
def create_sale(
    *,
    sale_in: SaleCreate,
    buyer_id: int = Depends(require_actor_id),
    sale_service: SaleService = Depends(get_sale_service),
) -> SaleResponse:
    """
    Check out a cart.

    Args:
        sale_in: Cart lines and payment method
        buyer_id: The acting user, taken from X-User-Id
        sale_service: Sale service

    Returns:
        The pending sale with its items
    """
    return sale_service.create_sale(buyer_id, sale_in.items, sale_in.payment_method)


@router.get("", response_model=List[SaleResponse])
def list_sales(
    *,
    buyer_id: Optional[int] = Query(None, ge=1, description="Filter by buyer ID"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    sale_service: SaleService = Depends(get_sale_service),
) -> List[SaleResponse]:
    """
    List a buyer's sales newest first, or the most recent sales when no
    buyer is given.
    """
    if buyer_id is None:
        return sale_service.list_recent_sales(limit=limit)
    return sale_service.list_sales_by_buyer(buyer_id, skip=skip, limit=limit)


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    *,
    sale_id: int = Path(..., ge=1, description="The ID of the sale to retrieve"),
    sale_service: SaleService = Depends(get_sale_service),
) -> SaleResponse:
    return sale_service.get_sale(sale_id)


@router.post("/{sale_id}/payment", response_model=SaleResponse)
def confirm_payment(
    *,
    sale_id: int = Path(..., ge=1, description="The ID of the sale"),
    payment_in: PaymentConfirmation,
    sale_service: SaleService = Depends(get_sale_service),
) -> SaleResponse:
    """
    Record the payment outcome of a sale. Repeating the recorded outcome is
    a no-op.
    """
    return sale_service.confirm_payment(sale_id, payment_in.outcome, payment_in.transaction_ref)


@router.post("/{sale_id}/refund", response_model=SaleResponse)
def refund_sale(
    *,
    sale_id: int = Path(..., ge=1, description="The ID of the sale to refund"),
    sale_service: SaleService = Depends(get_sale_service),
) -> SaleResponse:
    return sale_service.refund_sale(sale_id)
