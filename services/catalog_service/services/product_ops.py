"""Product operations: seller-scoped catalog management."""

import uuid
from typing import Optional

from libs.auth.guard import ensure_owner, ensure_role, is_admin, is_seller
from libs.auth.models import AuthUser, Role
from libs.common.config import get_settings
from libs.common.errors import NotFound, ValidationFailed
from libs.common.logging import get_logger
from libs.common.pagination import fetch_page
from libs.db.soft_delete import ensure_active, erase, only_active
from services.catalog_service.models import Product, ProductStatus
from services.catalog_service.schemas import ProductCreate, ProductUpdate
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()


async def _load_product(db: AsyncSession, product_id: uuid.UUID) -> Optional[Product]:
    result = await db.execute(select(Product).where(Product.id == product_id))
    return result.scalar_one_or_none()


def _ensure_product_visible(user: AuthUser, product: Product) -> None:
    # Sellers never see other sellers' listings, buyers only see live ones
    if is_admin(user):
        return
    if is_seller(user):
        if product.seller_id != user.user_id:
            raise NotFound("Product not found")
        return
    if product.status != ProductStatus.ACTIVE:
        raise NotFound("Product not found")


async def create_product(
    db: AsyncSession, user: AuthUser, body: ProductCreate
) -> Product:
    """List a new product owned by the calling seller."""
    ensure_role(user, Role.SELLER)

    existing = await db.execute(select(Product.id).where(Product.slug == body.slug))
    if existing.scalar_one_or_none():
        raise ValidationFailed(f"Slug '{body.slug}' is already in use")

    product = Product(
        seller_id=user.user_id,
        title=body.title,
        slug=body.slug,
        description=body.description,
        price=body.price,
        currency=(body.currency or settings.DEFAULT_CURRENCY).upper(),
        status=body.status,
    )
    db.add(product)
    await db.commit()
    await db.refresh(product)

    logger.info("Seller %s created product %s (%s)", user.user_id, product.id, product.slug)
    return product


async def search_products(
    db: AsyncSession,
    user: AuthUser,
    *,
    search: Optional[str] = None,
    status: Optional[ProductStatus] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Product], int]:
    """Search products visible to ``user``."""
    query = only_active(select(Product), Product)

    if is_seller(user):
        query = query.where(Product.seller_id == user.user_id)
    elif not is_admin(user):
        query = query.where(Product.status == ProductStatus.ACTIVE)

    if status:
        query = query.where(Product.status == status)
    if search:
        query = query.where(Product.title.ilike(f"%{search}%"))

    return await fetch_page(
        db, query, skip=skip, limit=limit, order_by=(Product.created_at.desc(),)
    )


async def get_product(
    db: AsyncSession, user: AuthUser, product_id: uuid.UUID
) -> Product:
    product = ensure_active(await _load_product(db, product_id), "Product")
    _ensure_product_visible(user, product)
    return product


async def get_orderable_product(
    db: AsyncSession, product_id: uuid.UUID
) -> Optional[Product]:
    """Return the product if it exists, is not erased and is on sale."""
    product = await _load_product(db, product_id)
    if product is None or product.is_deleted or product.status != ProductStatus.ACTIVE:
        return None
    return product


async def update_product(
    db: AsyncSession, user: AuthUser, product_id: uuid.UUID, body: ProductUpdate
) -> Product:
    product = await get_product(db, user, product_id)
    ensure_owner(user, product.seller_id, action="update this product")

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)
    logger.info("Product %s updated by %s", product.id, user.user_id)
    return product


async def erase_product(
    db: AsyncSession, user: AuthUser, product_id: uuid.UUID
) -> Product:
    product = await _load_product(db, product_id)
    if product is None:
        raise NotFound("Product not found")
    _ensure_product_visible(user, product)
    ensure_owner(user, product.seller_id, action="delete this product")

    erase(product, actor_id=user.user_id, label="Product")
    await db.commit()
    logger.info("Product %s erased by %s", product.id, user.user_id)
    return product
