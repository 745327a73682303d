# File: agromarket/api/api.py

from fastapi import APIRouter

from agromarket.api.endpoints import inventory, products, sales

api_router = APIRouter()

api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(sales.router, prefix="/sales", tags=["Sales"])
api_router.include_router(
    inventory.router,
    prefix="/inventory",
    tags=["Inventory"],
    responses={
        404: {"description": "Product not found"},
    },
)
