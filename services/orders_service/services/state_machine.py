"""Status transition tables for the order aggregate and its children.

Transitions only move forward. A status with no outgoing edges is terminal:
the record can no longer change through the state machine.
"""

import enum
from dataclasses import dataclass
from typing import Mapping

from libs.common.errors import InvalidStateTransition
from services.orders_service.models.enums import (
    CancellationStatus,
    DeliveryStatus,
    OrderStatus,
    ShipmentStatus,
)


@dataclass(frozen=True)
class StateMachine:
    name: str
    transitions: Mapping[enum.Enum, frozenset]

    @property
    def terminal_states(self) -> frozenset:
        return frozenset(s for s, targets in self.transitions.items() if not targets)

    def is_terminal(self, state: enum.Enum) -> bool:
        return not self.transitions.get(state)

    def can_transition(self, current: enum.Enum, target: enum.Enum) -> bool:
        return target in self.transitions.get(current, frozenset())

    def ensure_transition(self, current: enum.Enum, target: enum.Enum) -> None:
        """Raise ``InvalidStateTransition`` unless ``current -> target`` is allowed."""
        if self.is_terminal(current):
            raise InvalidStateTransition(
                f"{self.name} is {current.value} and can no longer change"
            )
        if not self.can_transition(current, target):
            raise InvalidStateTransition(
                f"{self.name} cannot move from {current.value} to {target.value}"
            )


ORDER_MACHINE = StateMachine(
    name="Order",
    transitions={
        OrderStatus.CREATED: frozenset(
            {OrderStatus.PAID, OrderStatus.IN_FULFILLMENT, OrderStatus.CANCELLED}
        ),
        OrderStatus.PAID: frozenset(
            {OrderStatus.IN_FULFILLMENT, OrderStatus.CANCELLED}
        ),
        OrderStatus.IN_FULFILLMENT: frozenset(
            {OrderStatus.SHIPPING, OrderStatus.CANCELLED}
        ),
        OrderStatus.SHIPPING: frozenset({OrderStatus.DELIVERED}),
        OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED}),
        OrderStatus.COMPLETED: frozenset(),
        OrderStatus.CANCELLED: frozenset(),
    },
)

SHIPMENT_MACHINE = StateMachine(
    name="Shipment",
    transitions={
        ShipmentStatus.PENDING: frozenset({ShipmentStatus.SHIPPED}),
        ShipmentStatus.SHIPPED: frozenset({ShipmentStatus.DELIVERED}),
        ShipmentStatus.DELIVERED: frozenset(),
    },
)

DELIVERY_MACHINE = StateMachine(
    name="Delivery",
    transitions={
        DeliveryStatus.PREPARED: frozenset({DeliveryStatus.DISPATCHED}),
        DeliveryStatus.DISPATCHED: frozenset({DeliveryStatus.DELIVERED}),
        DeliveryStatus.DELIVERED: frozenset(),
    },
)

CANCELLATION_MACHINE = StateMachine(
    name="Cancellation",
    transitions={
        CancellationStatus.REQUESTED: frozenset(
            {CancellationStatus.APPROVED, CancellationStatus.REJECTED}
        ),
        CancellationStatus.APPROVED: frozenset(),
        CancellationStatus.REJECTED: frozenset(),
    },
)

# Orders that can still be cancelled or receive new shipments
CANCELLABLE_ORDER_STATES = frozenset(
    {OrderStatus.CREATED, OrderStatus.PAID, OrderStatus.IN_FULFILLMENT}
)
CLOSED_ORDER_STATES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)
