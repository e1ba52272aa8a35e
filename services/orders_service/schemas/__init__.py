"""Orders Service schemas package."""

from services.orders_service.schemas.cancellation import (  # noqa: F401
    CancellationCreate,
    CancellationResponse,
    CancellationUpdate,
)
from services.orders_service.schemas.cart import (  # noqa: F401
    CartCreate,
    CartItemCreate,
    CartItemResponse,
    CartResponse,
)
from services.orders_service.schemas.fulfillment import (  # noqa: F401
    DeliveryUpdate,
    ShipmentCreate,
    ShipmentItemCreate,
    ShipmentItemResponse,
    ShipmentItemUpdate,
    ShipmentResponse,
    ShipmentUpdate,
)
from services.orders_service.schemas.order import (  # noqa: F401
    DeliveryCreate,
    DeliveryResponse,
    OrderCreate,
    OrderItemCreate,
    OrderItemResponse,
    OrderResponse,
    OrderStatusHistoryResponse,
    OrderSummaryResponse,
    PaymentCreate,
    PaymentResponse,
)

__all__ = [
    # Cart
    "CartCreate",
    "CartItemCreate",
    "CartItemResponse",
    "CartResponse",
    # Order
    "DeliveryCreate",
    "DeliveryResponse",
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderResponse",
    "OrderStatusHistoryResponse",
    "OrderSummaryResponse",
    "PaymentCreate",
    "PaymentResponse",
    # Fulfillment
    "DeliveryUpdate",
    "ShipmentCreate",
    "ShipmentItemCreate",
    "ShipmentItemResponse",
    "ShipmentItemUpdate",
    "ShipmentResponse",
    "ShipmentUpdate",
    # Cancellation
    "CancellationCreate",
    "CancellationResponse",
    "CancellationUpdate",
]
