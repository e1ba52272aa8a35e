"""Core ledger operations: atomic balance movements with row-level locking.

Every balance change goes through ``post_transaction``:

1. SELECT FOR UPDATE on the account row (concurrent posts serialize here)
2. Validate account state and the amount for the transaction type
3. Reject debits beyond the balance without touching it
4. Append the transaction with balance snapshots
5. Update the account balance
6. Commit (or leave it to the caller when part of a larger unit)
"""

import uuid
from typing import Optional

from libs.auth.guard import ensure_role, ensure_visible, is_admin
from libs.auth.models import AuthUser, Role
from libs.common.errors import (
    AuthorizationDenied,
    InsufficientFunds,
    InvalidStateTransition,
    NotFound,
    ValidationFailed,
)
from libs.common.logging import get_logger
from libs.common.pagination import fetch_page
from libs.db.soft_delete import ensure_active, erase, only_active
from services.ledger_service.models import (
    AccountKind,
    AccountStatus,
    BusinessStatus,
    LedgerAccount,
    LedgerTransaction,
    TransactionDirection,
    TransactionType,
)
from services.ledger_service.schemas import AccountCreate, TransactionCreate
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


def _ensure_account_visible(user: AuthUser, account: LedgerAccount) -> None:
    ensure_visible(
        user,
        label="Account",
        owner_ids=[account.owner_id],
        seller_ids=[account.owner_id],
    )


async def _load_account(
    db: AsyncSession, account_id: uuid.UUID, *, lock: bool = False
) -> Optional[LedgerAccount]:
    query = select(LedgerAccount).where(LedgerAccount.id == account_id)
    if lock:
        # Refresh the identity-mapped row with the locked values
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def create_account(
    db: AsyncSession, user: AuthUser, body: AccountCreate
) -> LedgerAccount:
    """Open an account for ``body.owner_id``.

    A positive opening balance is booked as an adjustment so the balance always
    equals the sum of its transactions.
    """
    ensure_role(user, Role.ADMIN)

    existing = await db.execute(
        select(LedgerAccount.id).where(LedgerAccount.code == body.code)
    )
    if existing.scalar_one_or_none():
        raise ValidationFailed(f"Account code '{body.code}' is already in use")

    account = LedgerAccount(
        owner_id=body.owner_id,
        kind=body.kind,
        code=body.code,
        balance=0,
        status=body.status,
        expired_at=body.expired_at,
        created_by=user.user_id,
    )
    db.add(account)
    await db.flush()

    if body.initial_balance > 0:
        _append(
            db,
            account,
            transaction_type=TransactionType.ADJUSTMENT,
            direction=TransactionDirection.CREDIT,
            amount=body.initial_balance,
            evidence_reference=f"account-opening:{account.code}",
            initiated_by=user.user_id,
            reason="Opening balance",
        )

    await db.commit()
    await db.refresh(account)

    logger.info(
        "Opened %s account %s for %s (balance=%d)",
        account.kind.value,
        account.code,
        account.owner_id,
        account.balance,
    )
    return account


async def get_account(
    db: AsyncSession, user: AuthUser, account_id: uuid.UUID
) -> LedgerAccount:
    account = await _load_account(db, account_id)
    if account is None:
        raise NotFound("Account not found")
    _ensure_account_visible(user, account)
    return ensure_active(account, "Account")


async def list_accounts(
    db: AsyncSession,
    user: AuthUser,
    *,
    owner_id: Optional[str] = None,
    kind: Optional[AccountKind] = None,
    status: Optional[AccountStatus] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[LedgerAccount], int]:
    """List accounts. Non-admins only ever see their own."""
    query = only_active(select(LedgerAccount), LedgerAccount)
    if is_admin(user):
        if owner_id:
            query = query.where(LedgerAccount.owner_id == owner_id)
    else:
        query = query.where(LedgerAccount.owner_id == user.user_id)
    if kind:
        query = query.where(LedgerAccount.kind == kind)
    if status:
        query = query.where(LedgerAccount.status == status)

    return await fetch_page(
        db, query, skip=skip, limit=limit, order_by=(LedgerAccount.created_at.desc(),)
    )


async def update_account_status(
    db: AsyncSession,
    user: AuthUser,
    account_id: uuid.UUID,
    new_status: AccountStatus,
) -> LedgerAccount:
    """Freeze, unfreeze or close an account.

    Owners may toggle ``active``/``frozen``; closing is admin-only and final.
    """
    account = await get_account(db, user, account_id)
    account = await _load_account(db, account.id, lock=True)

    if account.status == new_status:
        return account
    if account.status == AccountStatus.CLOSED:
        raise InvalidStateTransition("Closed accounts cannot be reopened")
    if new_status == AccountStatus.CLOSED and not is_admin(user):
        raise AuthorizationDenied("Only an admin may close an account")

    old_status = account.status
    account.status = new_status
    await db.commit()
    await db.refresh(account)

    logger.info(
        "Account %s status %s -> %s by %s",
        account.code,
        old_status.value,
        new_status.value,
        user.user_id,
    )
    return account


async def erase_account(
    db: AsyncSession, user: AuthUser, account_id: uuid.UUID
) -> LedgerAccount:
    ensure_role(user, Role.ADMIN)
    account = await _load_account(db, account_id)
    if account is None:
        raise NotFound("Account not found")
    erase(account, actor_id=user.user_id, label="Account")
    await db.commit()
    logger.info("Account %s erased by %s", account.code, user.user_id)
    return account


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def _append(
    db: AsyncSession,
    account: LedgerAccount,
    *,
    transaction_type: TransactionType,
    direction: TransactionDirection,
    amount: int,
    evidence_reference: str,
    initiated_by: str,
    reason: Optional[str] = None,
    business_status: BusinessStatus = BusinessStatus.APPLIED,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> LedgerTransaction:
    """Book a movement against an already validated, locked account."""
    balance_before = account.balance
    if direction == TransactionDirection.CREDIT:
        balance_after = balance_before + amount
    else:
        balance_after = balance_before - amount

    txn = LedgerTransaction(
        account_id=account.id,
        type=transaction_type,
        direction=direction,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        business_status=business_status,
        reason=reason,
        evidence_reference=evidence_reference,
        reference_type=reference_type,
        reference_id=reference_id,
        initiated_by=initiated_by,
    )
    db.add(txn)
    account.balance = balance_after
    return txn


def _resolve_movement(
    transaction_type: TransactionType, amount: int, balance: int
) -> tuple[TransactionDirection, int]:
    """Return the direction and booked amount, validating the request."""
    if transaction_type == TransactionType.ACCRUAL:
        if amount <= 0:
            raise ValidationFailed("Accrual amount must be positive")
        return TransactionDirection.CREDIT, amount

    if transaction_type == TransactionType.REDEMPTION:
        if amount <= 0:
            raise ValidationFailed("Redemption amount must be positive")
        if amount > balance:
            raise InsufficientFunds(
                f"Insufficient balance: requested {amount}, available {balance}"
            )
        return TransactionDirection.DEBIT, amount

    if transaction_type == TransactionType.ADJUSTMENT:
        if amount == 0:
            raise ValidationFailed("Adjustment amount must not be zero")
        if amount > 0:
            return TransactionDirection.CREDIT, amount
        if -amount > balance:
            raise InsufficientFunds(
                f"Insufficient balance: adjustment {amount}, available {balance}"
            )
        return TransactionDirection.DEBIT, -amount

    # Expiration never fails for lack of funds: it removes what is left
    if amount < 0:
        raise ValidationFailed("Expiration amount must not be negative")
    return TransactionDirection.DEBIT, min(amount, balance)


async def post_transaction(
    db: AsyncSession,
    *,
    account_id: uuid.UUID,
    transaction_type: TransactionType,
    amount: int,
    evidence_reference: str,
    initiated_by: str,
    reason: Optional[str] = None,
    business_status: BusinessStatus = BusinessStatus.APPLIED,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    commit: bool = True,
) -> LedgerTransaction:
    """Atomically apply one movement to an account.

    With ``commit=False`` the caller owns the unit of work (order payment and
    refund flows book ledger movements alongside their own rows).
    """
    if not evidence_reference or not evidence_reference.strip():
        raise ValidationFailed("evidence_reference is required")
    if business_status == BusinessStatus.REVERSED:
        raise ValidationFailed("Transactions cannot be created as reversed")

    account = ensure_active(await _load_account(db, account_id, lock=True), "Account")
    if account.status != AccountStatus.ACTIVE:
        logger.warning(
            "Rejected %s on %s account %s",
            transaction_type.value,
            account.status.value,
            account.code,
        )
        raise InvalidStateTransition(f"Account is {account.status.value}")

    try:
        direction, booked = _resolve_movement(transaction_type, amount, account.balance)
    except InsufficientFunds:
        logger.warning(
            "Insufficient funds on account %s: %s %d against %d",
            account.code,
            transaction_type.value,
            amount,
            account.balance,
        )
        raise

    txn = _append(
        db,
        account,
        transaction_type=transaction_type,
        direction=direction,
        amount=booked,
        evidence_reference=evidence_reference.strip(),
        initiated_by=initiated_by,
        reason=reason,
        business_status=business_status,
        reference_type=reference_type,
        reference_id=reference_id,
    )

    if commit:
        await db.commit()
        await db.refresh(txn)
    else:
        await db.flush()

    logger.info(
        "%s %s %d on account %s, balance %d -> %d",
        transaction_type.value,
        direction.value,
        booked,
        account.code,
        txn.balance_before,
        txn.balance_after,
    )
    return txn


async def create_transaction(
    db: AsyncSession,
    user: AuthUser,
    account_id: uuid.UUID,
    body: TransactionCreate,
) -> LedgerTransaction:
    """Post a transaction on behalf of ``user``.

    Ownership is decided by the account, never by ``body.owner_id``.
    """
    account = await get_account(db, user, account_id)
    if body.type == TransactionType.ADJUSTMENT and not is_admin(user):
        raise AuthorizationDenied("Only an admin may post adjustments")

    return await post_transaction(
        db,
        account_id=account.id,
        transaction_type=body.type,
        amount=body.amount,
        evidence_reference=body.evidence_reference,
        initiated_by=user.user_id,
        reason=body.reason,
        business_status=body.business_status,
        reference_type=body.reference_type,
        reference_id=body.reference_id,
    )


async def get_transaction(
    db: AsyncSession, user: AuthUser, transaction_id: uuid.UUID
) -> LedgerTransaction:
    """Read one transaction. Admins can still read erased ones for audit."""
    result = await db.execute(
        select(LedgerTransaction).where(LedgerTransaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()
    if txn is None:
        raise NotFound("Transaction not found")

    account = await _load_account(db, txn.account_id)
    _ensure_account_visible(user, account)
    if not is_admin(user):
        ensure_active(txn, "Transaction")
    return txn


async def list_transactions(
    db: AsyncSession,
    user: AuthUser,
    account_id: uuid.UUID,
    *,
    transaction_type: Optional[TransactionType] = None,
    include_deleted: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[LedgerTransaction], int]:
    account = await get_account(db, user, account_id)

    query = select(LedgerTransaction).where(LedgerTransaction.account_id == account.id)
    if not (include_deleted and is_admin(user)):
        query = only_active(query, LedgerTransaction)
    if transaction_type:
        query = query.where(LedgerTransaction.type == transaction_type)

    return await fetch_page(
        db,
        query,
        skip=skip,
        limit=limit,
        order_by=(LedgerTransaction.created_at.desc(),),
    )


async def erase_transaction(
    db: AsyncSession, user: AuthUser, transaction_id: uuid.UUID
) -> LedgerTransaction:
    """Logically remove a transaction. The account balance is left as booked."""
    ensure_role(user, Role.ADMIN)
    result = await db.execute(
        select(LedgerTransaction).where(LedgerTransaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()
    if txn is None:
        raise NotFound("Transaction not found")

    erase(txn, actor_id=user.user_id, label="Transaction")
    await db.commit()
    logger.info("Transaction %s erased by %s", txn.id, user.user_id)
    return txn


async def reverse_transaction(
    db: AsyncSession,
    *,
    transaction_id: uuid.UUID,
    evidence_reference: str,
    initiated_by: str,
    reason: Optional[str] = None,
) -> LedgerTransaction:
    """Credit back a debit and mark the original as reversed.

    Part of a caller-owned unit of work; nothing is committed here.
    """
    result = await db.execute(
        select(LedgerTransaction).where(LedgerTransaction.id == transaction_id)
    )
    original = result.scalar_one_or_none()
    if original is None:
        raise NotFound("Transaction not found")
    if original.business_status == BusinessStatus.REVERSED:
        raise InvalidStateTransition("Transaction is already reversed")
    if original.direction != TransactionDirection.DEBIT:
        raise ValidationFailed("Only debits can be reversed")

    # Refunds land even on frozen accounts
    account = ensure_active(
        await _load_account(db, original.account_id, lock=True), "Account"
    )
    if account.status == AccountStatus.CLOSED:
        raise InvalidStateTransition("Cannot refund to a closed account")

    refund = _append(
        db,
        account,
        transaction_type=TransactionType.ACCRUAL,
        direction=TransactionDirection.CREDIT,
        amount=original.amount,
        evidence_reference=evidence_reference,
        initiated_by=initiated_by,
        reason=reason,
        reference_type="transaction",
        reference_id=str(original.id),
    )
    original.business_status = BusinessStatus.REVERSED
    await db.flush()

    logger.info(
        "Reversed transaction %s on account %s (%d)",
        original.id,
        account.code,
        original.amount,
    )
    return refund
