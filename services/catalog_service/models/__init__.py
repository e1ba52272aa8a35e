"""Catalog Service models package.

Re-exports all models and enums so that SQLAlchemy's mapper registry sees
every model class on import and Alembic env.py can import from one place.
"""

from services.catalog_service.models.enums import (  # noqa: F401
    MODERATION_OUTCOME,
    ModerationAction,
    ProductStatus,
    TagStatus,
)
from services.catalog_service.models.product import Product  # noqa: F401
from services.catalog_service.models.tag import (  # noqa: F401
    ProductTag,
    Tag,
    TagModeration,
)

__all__ = [
    # Enums
    "MODERATION_OUTCOME",
    "ModerationAction",
    "ProductStatus",
    "TagStatus",
    # Models
    "Product",
    "ProductTag",
    "Tag",
    "TagModeration",
]
