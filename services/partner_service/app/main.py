"""FastAPI application for the Partner Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.partner_service.routers import (
    admin_router,
    bookings_router,
    plans_router,
    wallet_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Partner Service FastAPI app."""
    app = FastAPI(
        title="Partner Service",
        version="0.1.0",
        description=(
            "Partner wallets, MG plan subscriptions and lead-acceptance gating."
        ),
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Structured logging + request tracing
    add_observability_middleware(app)

    # 400 for validation errors, logged 500 for everything unhandled
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "partner"}

    # Partner-facing routes
    app.include_router(wallet_router)
    app.include_router(plans_router)
    app.include_router(bookings_router)

    # Admin routes
    app.include_router(admin_router)

    return app


app = create_app()
