from fastapi import APIRouter

from app.api.endpoints import (
    admin,
    auth,
    checkout,
    feature,
    order,
    plan,
    upgrade,
    usage,
    user,
)

# Main API router
api_router = APIRouter()

# Include endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(plan.router, prefix="/plans", tags=["Plans"])
api_router.include_router(upgrade.router, prefix="/upgrades", tags=["Upgrades"])
api_router.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
api_router.include_router(order.router, prefix="/orders", tags=["Orders"])
api_router.include_router(usage.router, prefix="/usage", tags=["Usage"])
api_router.include_router(user.router, prefix="/users", tags=["Users"])
api_router.include_router(feature.router, prefix="/features", tags=["Features"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
