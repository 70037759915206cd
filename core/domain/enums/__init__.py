"""Domain enums."""

from .adjustment_reason import AdjustmentReason
from .execution_status import ExecutionStatus
from .order_status import OrderStatus
from .payment_status import PaymentStatus, RefundReason, RefundStatus
from .return_status import ReturnStatus

__all__ = [
    "AdjustmentReason",
    "ExecutionStatus",
    "OrderStatus",
    "PaymentStatus",
    "RefundReason",
    "RefundStatus",
    "ReturnStatus",
]
