"""Catalog product routes: listing, seller management and product tags."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.catalog_service.models import ProductStatus
from services.catalog_service.schemas import (
    ProductCreate,
    ProductResponse,
    ProductTagCreate,
    ProductTagResponse,
    ProductUpdate,
)
from services.catalog_service.services import product_ops, tag_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    body: ProductCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a product owned by the calling seller."""
    return await product_ops.create_product(db, current_user, body)


@router.get("/products", response_model=Page[ProductResponse])
async def search_products(
    search: Optional[str] = None,
    product_status: Optional[ProductStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Search products. Sellers only ever see their own listings."""
    products, total = await product_ops.search_products(
        db,
        current_user,
        search=search,
        status=product_status,
        skip=skip,
        limit=limit,
    )
    return Page[ProductResponse](
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await product_ops.get_product(db, current_user, product_id)


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    body: ProductUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await product_ops.update_product(db, current_user, product_id, body)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def erase_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Soft-delete a product. Deleting it again fails."""
    await product_ops.erase_product(db, current_user, product_id)


# ---------------------------------------------------------------------------
# Product tags
# ---------------------------------------------------------------------------


@router.post(
    "/products/{product_id}/tags",
    response_model=ProductTagResponse,
    status_code=status.HTTP_201_CREATED,
)
async def attach_tag(
    product_id: uuid.UUID,
    body: ProductTagCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await tag_ops.attach_tag(db, current_user, product_id, body.tag_id)


@router.get("/products/{product_id}/tags", response_model=list[ProductTagResponse])
async def list_product_tags(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await tag_ops.list_product_tags(db, current_user, product_id)


@router.delete(
    "/products/{product_id}/tags/{product_tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def erase_product_tag(
    product_id: uuid.UUID,
    product_tag_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await tag_ops.erase_product_tag(db, current_user, product_id, product_tag_id)
