"""Admin ledger routes: account provisioning and audit removal."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.ledger_service.models import AccountKind, AccountStatus
from services.ledger_service.schemas import AccountCreate, AccountResponse
from services.ledger_service.services import ledger_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/ledger", tags=["admin-ledger"])


@router.post(
    "/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED
)
async def create_account(
    body: AccountCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Open a mileage or deposit account for a user."""
    return await ledger_ops.create_account(db, admin, body)


@router.get("/accounts", response_model=Page[AccountResponse])
async def list_accounts(
    owner_id: Optional[str] = None,
    kind: Optional[AccountKind] = None,
    account_status: Optional[AccountStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    accounts, total = await ledger_ops.list_accounts(
        db,
        admin,
        owner_id=owner_id,
        kind=kind,
        status=account_status,
        skip=skip,
        limit=limit,
    )
    return Page[AccountResponse](
        items=[AccountResponse.model_validate(a) for a in accounts],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def erase_account(
    account_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await ledger_ops.erase_account(db, admin, account_id)


@router.delete(
    "/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def erase_transaction(
    transaction_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Soft-delete a transaction. A second delete fails."""
    await ledger_ops.erase_transaction(db, admin, transaction_id)
