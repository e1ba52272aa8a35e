"""FastAPI application for the Ledger Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.ledger_service.routers import admin_router, ledger_router


def create_app() -> FastAPI:
    """Create and configure the Ledger Service FastAPI app."""
    app = FastAPI(
        title="Commerce Ledger Service",
        version="0.1.0",
        description="Mileage and deposit accounts with an append-only transaction log.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "ledger"}

    # Account-holder routes
    app.include_router(ledger_router)

    # Admin routes
    app.include_router(admin_router)

    return app


app = create_app()
