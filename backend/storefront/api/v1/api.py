from fastapi import APIRouter
from storefront.api.v1.endpoints import (
    pincodes,
    promotions,
)

api_router = APIRouter()
api_router.include_router(pincodes.router, prefix="/pincodes", tags=["pincodes"])
api_router.include_router(promotions.router, prefix="/promotions", tags=["promotions"])
