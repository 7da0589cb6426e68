"""API routes."""

from fastapi import APIRouter

from deals_admin.routes import categories, deals, retailers

api_router = APIRouter(prefix="/api")

# Retailer applications (review + admin-created retailers)
api_router.include_router(retailers.router, prefix="/retailers", tags=["retailers"])

# Deal inventory (review + catalog management)
api_router.include_router(deals.router, prefix="/deals", tags=["deals"])

# Categories
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
