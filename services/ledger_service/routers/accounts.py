"""Account-holder ledger routes: accounts, balances and transactions."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.ledger_service.models import AccountKind, AccountStatus, TransactionType
from services.ledger_service.schemas import (
    AccountResponse,
    AccountStatusUpdate,
    TransactionCreate,
    TransactionResponse,
)
from services.ledger_service.services import ledger_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.get("/accounts", response_model=Page[AccountResponse])
async def list_my_accounts(
    kind: Optional[AccountKind] = None,
    account_status: Optional[AccountStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    accounts, total = await ledger_ops.list_accounts(
        db, current_user, kind=kind, status=account_status, skip=skip, limit=limit
    )
    return Page[AccountResponse](
        items=[AccountResponse.model_validate(a) for a in accounts],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await ledger_ops.get_account(db, current_user, account_id)


@router.put("/accounts/{account_id}", response_model=AccountResponse)
async def update_account_status(
    account_id: uuid.UUID,
    body: AccountStatusUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Freeze or unfreeze an account (admins may also close it)."""
    return await ledger_ops.update_account_status(
        db, current_user, account_id, body.status
    )


@router.post(
    "/accounts/{account_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transaction(
    account_id: uuid.UUID,
    body: TransactionCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Post an accrual, redemption, adjustment or expiration."""
    return await ledger_ops.create_transaction(db, current_user, account_id, body)


@router.get(
    "/accounts/{account_id}/transactions", response_model=Page[TransactionResponse]
)
async def list_transactions(
    account_id: uuid.UUID,
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    include_deleted: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    txns, total = await ledger_ops.list_transactions(
        db,
        current_user,
        account_id,
        transaction_type=transaction_type,
        include_deleted=include_deleted,
        skip=skip,
        limit=limit,
    )
    return Page[TransactionResponse](
        items=[TransactionResponse.model_validate(t) for t in txns],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await ledger_ops.get_transaction(db, current_user, transaction_id)
