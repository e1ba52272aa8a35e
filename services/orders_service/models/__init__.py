"""Orders Service models package.

Re-exports all models and enums so that SQLAlchemy's mapper registry sees
every model class on import.
"""

from services.orders_service.models.cancellation import Cancellation  # noqa: F401
from services.orders_service.models.cart import Cart, CartItem  # noqa: F401
from services.orders_service.models.enums import (  # noqa: F401
    LEDGER_PAYMENT_TYPES,
    CancellationStatus,
    CartStatus,
    DeliveryStatus,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    ShipmentStatus,
)
from services.orders_service.models.fulfillment import (  # noqa: F401
    Delivery,
    Shipment,
    ShipmentItem,
)
from services.orders_service.models.order import (  # noqa: F401
    Order,
    OrderItem,
    OrderStatusHistory,
    Payment,
)

__all__ = [
    # Enums
    "LEDGER_PAYMENT_TYPES",
    "CancellationStatus",
    "CartStatus",
    "DeliveryStatus",
    "OrderItemStatus",
    "OrderStatus",
    "PaymentStatus",
    "PaymentType",
    "ShipmentStatus",
    # Cart
    "Cart",
    "CartItem",
    # Order aggregate
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Payment",
    # Fulfillment
    "Delivery",
    "Shipment",
    "ShipmentItem",
    # Cancellation
    "Cancellation",
]
