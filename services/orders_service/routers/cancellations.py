"""Cancellation routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.orders_service.models import CancellationStatus
from services.orders_service.schemas import (
    CancellationCreate,
    CancellationResponse,
    CancellationUpdate,
)
from services.orders_service.services import cancellation_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["cancellations"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin-cancellations"])


# Registered before /orders/{order_id} so "cancellations" is not read as an id
@router.get("/cancellations", response_model=Page[CancellationResponse])
async def list_cancellations(
    order_id: Optional[uuid.UUID] = None,
    cancellation_status: Optional[CancellationStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cancellations, total = await cancellation_ops.list_cancellations(
        db,
        current_user,
        order_id=order_id,
        status=cancellation_status,
        skip=skip,
        limit=limit,
    )
    return Page[CancellationResponse](
        items=[CancellationResponse.model_validate(c) for c in cancellations],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post(
    "/{order_id}/cancellations",
    response_model=CancellationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_cancellation(
    order_id: uuid.UUID,
    body: CancellationCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Request cancellation of an order."""
    return await cancellation_ops.create_cancellation(db, current_user, order_id, body)


@router.get(
    "/{order_id}/cancellations/{cancellation_id}",
    response_model=CancellationResponse,
)
async def get_cancellation(
    order_id: uuid.UUID,
    cancellation_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await cancellation_ops.get_cancellation(
        db, current_user, order_id, cancellation_id
    )


@router.put(
    "/{order_id}/cancellations/{cancellation_id}",
    response_model=CancellationResponse,
)
async def update_cancellation(
    order_id: uuid.UUID,
    cancellation_id: uuid.UUID,
    body: CancellationUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Amend the reason, or approve/reject the request."""
    return await cancellation_ops.update_cancellation(
        db, current_user, order_id, cancellation_id, body
    )


@admin_router.delete(
    "/{order_id}/cancellations/{cancellation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def erase_cancellation(
    order_id: uuid.UUID,
    cancellation_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await cancellation_ops.erase_cancellation(db, admin, order_id, cancellation_id)
