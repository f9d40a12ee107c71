from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Usage Billing
    billing,
    # Freight Simulation
    freight,
)


api_router = APIRouter(prefix="/api/v1")

# Usage Billing
api_router.include_router(
    billing.router,
    prefix="/billing",
    tags=["Usage Billing"]
)

# Freight Simulation
api_router.include_router(
    freight.router,
    prefix="/freight",
    tags=["Freight"]
)
