"""Ledger service routers."""

from services.ledger_service.routers.accounts import router as ledger_router
from services.ledger_service.routers.admin import router as admin_router

__all__ = [
    "admin_router",
    "ledger_router",
]
