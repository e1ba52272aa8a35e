"""Orders service routers."""

from services.orders_service.routers.cancellations import (
    admin_router as admin_cancellations_router,
)
from services.orders_service.routers.cancellations import (
    router as cancellations_router,
)
from services.orders_service.routers.fulfillment import router as fulfillment_router
from services.orders_service.routers.orders import router as orders_router

__all__ = [
    "admin_cancellations_router",
    "cancellations_router",
    "fulfillment_router",
    "orders_router",
]
