"""Ledger Service models package.

Re-exports all models and enums so that SQLAlchemy's mapper registry sees
every model class on import.
"""

from services.ledger_service.models.account import LedgerAccount  # noqa: F401
from services.ledger_service.models.enums import (  # noqa: F401
    TRANSACTION_TYPE_ALIASES,
    AccountKind,
    AccountStatus,
    BusinessStatus,
    TransactionDirection,
    TransactionType,
)
from services.ledger_service.models.transaction import LedgerTransaction  # noqa: F401

__all__ = [
    # Enums
    "TRANSACTION_TYPE_ALIASES",
    "AccountKind",
    "AccountStatus",
    "BusinessStatus",
    "TransactionDirection",
    "TransactionType",
    # Models
    "LedgerAccount",
    "LedgerTransaction",
]
