"""Enum definitions for orders service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class CartStatus(str, enum.Enum):
    ACTIVE = "active"
    CONVERTED = "converted"
    ABANDONED = "abandoned"


class OrderStatus(str, enum.Enum):
    CREATED = "created"
    PAID = "paid"
    IN_FULFILLMENT = "in_fulfillment"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderItemStatus(str, enum.Enum):
    ORDERED = "ordered"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class PaymentType(str, enum.Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MILEAGE = "mileage"
    DEPOSIT = "deposit"


# Payment types settled against a ledger account
LEDGER_PAYMENT_TYPES = frozenset({PaymentType.MILEAGE, PaymentType.DEPOSIT})


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ShipmentStatus(str, enum.Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class DeliveryStatus(str, enum.Enum):
    PREPARED = "prepared"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"


class CancellationStatus(str, enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
