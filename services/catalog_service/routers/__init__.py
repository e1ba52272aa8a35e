"""Catalog service routers."""

from services.catalog_service.routers.products import router as products_router
from services.catalog_service.routers.tags import admin_router as admin_tags_router
from services.catalog_service.routers.tags import router as tags_router

__all__ = [
    "admin_tags_router",
    "products_router",
    "tags_router",
]
