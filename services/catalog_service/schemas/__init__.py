"""Catalog Service schemas package.

Re-exports all schemas so router files import from one place.
"""

from services.catalog_service.schemas.product import (  # noqa: F401
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from services.catalog_service.schemas.tag import (  # noqa: F401
    ModerationCreate,
    ModerationResponse,
    ModerationUpdate,
    ProductTagCreate,
    ProductTagResponse,
    TagCreate,
    TagResponse,
    TagUpdate,
)

__all__ = [
    "ModerationCreate",
    "ModerationResponse",
    "ModerationUpdate",
    "ProductCreate",
    "ProductResponse",
    "ProductTagCreate",
    "ProductTagResponse",
    "ProductUpdate",
    "TagCreate",
    "TagResponse",
    "TagUpdate",
]
