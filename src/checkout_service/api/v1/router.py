"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from checkout_service.api.v1 import checkout, checkout_attempts, health

api_router = APIRouter()

# Include all routers
api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    checkout_attempts.router,
    prefix="/checkout-attempts",
    tags=["Checkout Attempts"],
)

api_router.include_router(
    checkout.router,
    prefix="/checkout",
    tags=["Checkout"],
)
