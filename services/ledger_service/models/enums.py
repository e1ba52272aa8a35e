"""Enums for the Ledger Service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class AccountKind(str, enum.Enum):
    MILEAGE = "mileage"
    DEPOSIT = "deposit"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    FROZEN = "frozen"
    CLOSED = "closed"


class TransactionType(str, enum.Enum):
    ACCRUAL = "accrual"
    REDEMPTION = "redemption"
    ADJUSTMENT = "adjustment"
    EXPIRATION = "expiration"


# Names clients use for the same movements
TRANSACTION_TYPE_ALIASES = {
    "income": TransactionType.ACCRUAL,
    "outcome": TransactionType.REDEMPTION,
    "spend": TransactionType.REDEMPTION,
}


class TransactionDirection(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class BusinessStatus(str, enum.Enum):
    APPLIED = "applied"
    PENDING = "pending"
    REVERSED = "reversed"
