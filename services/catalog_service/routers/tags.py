"""Tag routes. Reads are public to any principal, management is admin-only."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.catalog_service.models import ModerationAction, TagStatus
from services.catalog_service.schemas import (
    ModerationCreate,
    ModerationResponse,
    ModerationUpdate,
    TagCreate,
    TagResponse,
    TagUpdate,
)
from services.catalog_service.services import tag_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/catalog", tags=["catalog-tags"])
admin_router = APIRouter(prefix="/admin/catalog", tags=["admin-catalog-tags"])


@router.get("/tags", response_model=Page[TagResponse])
async def list_tags(
    search: Optional[str] = None,
    tag_status: Optional[TagStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    tags, total = await tag_ops.list_tags(
        db, current_user, status=tag_status, search=search, skip=skip, limit=limit
    )
    return Page[TagResponse](
        items=[TagResponse.model_validate(t) for t in tags],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/tags/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await tag_ops.get_tag(db, current_user, tag_id)


# ---------------------------------------------------------------------------
# Admin tag management
# ---------------------------------------------------------------------------


@admin_router.post(
    "/tags", response_model=TagResponse, status_code=status.HTTP_201_CREATED
)
async def create_tag(
    body: TagCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await tag_ops.create_tag(db, admin, body)


@admin_router.put("/tags/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: uuid.UUID,
    body: TagUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await tag_ops.update_tag(db, admin, tag_id, body)


@admin_router.delete("/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def erase_tag(
    tag_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await tag_ops.erase_tag(db, admin, tag_id)


@admin_router.post(
    "/tags/{tag_id}/moderation",
    response_model=ModerationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def moderate_tag(
    tag_id: uuid.UUID,
    body: ModerationCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Record a moderation decision (approve/reject/flag/suspend)."""
    return await tag_ops.moderate_tag(
        db, admin, tag_id, action=body.action, reason=body.reason
    )


@admin_router.get("/tags/{tag_id}/moderation", response_model=Page[ModerationResponse])
async def list_moderations(
    tag_id: uuid.UUID,
    action: Optional[ModerationAction] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    entries, total = await tag_ops.list_moderations(
        db, admin, tag_id, action=action, skip=skip, limit=limit
    )
    return Page[ModerationResponse](
        items=[ModerationResponse.model_validate(e) for e in entries],
        total=total,
        skip=skip,
        limit=limit,
    )


@admin_router.put(
    "/tags/{tag_id}/moderation/{moderation_id}", response_model=ModerationResponse
)
async def update_moderation(
    tag_id: uuid.UUID,
    moderation_id: uuid.UUID,
    body: ModerationUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await tag_ops.update_moderation(
        db, admin, tag_id, moderation_id, reason=body.reason
    )


@admin_router.delete(
    "/tags/{tag_id}/moderation/{moderation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def erase_moderation(
    tag_id: uuid.UUID,
    moderation_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await tag_ops.erase_moderation(db, admin, tag_id, moderation_id)
