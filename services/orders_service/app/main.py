"""FastAPI application for the Orders Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.orders_service.routers import (
    admin_cancellations_router,
    cancellations_router,
    fulfillment_router,
    orders_router,
)


def create_app() -> FastAPI:
    """Create and configure the Orders Service FastAPI app."""
    app = FastAPI(
        title="Commerce Orders Service",
        version="0.1.0",
        description="Carts, orders, shipments, deliveries and cancellations.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "orders"}

    # Static /orders/cancellations must precede /orders/{order_id}
    app.include_router(cancellations_router)
    app.include_router(orders_router)
    app.include_router(fulfillment_router)

    # Admin routes
    app.include_router(admin_cancellations_router)

    return app


app = create_app()
