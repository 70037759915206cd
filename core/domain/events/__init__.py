"""Domain events published by workflows."""
from .base import DomainEvent
from .inventory_events import InventoryAdjustedEvent
from .order_events import OrderCanceledEvent, ReturnRefundedEvent
from .payment_events import (
    PaymentAuthorizedEvent,
    PaymentCapturedEvent,
    PaymentRefundedEvent,
)

__all__ = [
    "DomainEvent",
    "InventoryAdjustedEvent",
    "OrderCanceledEvent",
    "PaymentAuthorizedEvent",
    "PaymentCapturedEvent",
    "PaymentRefundedEvent",
    "ReturnRefundedEvent",
]
