"""Partner service routers."""

from services.partner_service.routers.admin import router as admin_router
from services.partner_service.routers.bookings import router as bookings_router
from services.partner_service.routers.plans import router as plans_router
from services.partner_service.routers.wallet import router as wallet_router

__all__ = [
    "admin_router",
    "bookings_router",
    "plans_router",
    "wallet_router",
]
