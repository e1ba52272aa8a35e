"""FastAPI application for the Catalog Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.catalog_service.routers import (
    admin_tags_router,
    products_router,
    tags_router,
)


def create_app() -> FastAPI:
    """Create and configure the Catalog Service FastAPI app."""
    app = FastAPI(
        title="Commerce Catalog Service",
        version="0.1.0",
        description="Seller products, tags and tag moderation.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "catalog"}

    app.include_router(products_router)
    app.include_router(tags_router)
    app.include_router(admin_tags_router)

    return app


app = create_app()
