"""Ledger Service schemas package."""

from services.ledger_service.schemas.account import (  # noqa: F401
    AccountCreate,
    AccountResponse,
    AccountStatusUpdate,
)
from services.ledger_service.schemas.transaction import (  # noqa: F401
    TransactionCreate,
    TransactionResponse,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "AccountStatusUpdate",
    "TransactionCreate",
    "TransactionResponse",
]
