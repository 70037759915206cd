"""
Payment Enums.

Status values for payments and refunds, and refund reasons.
"""
from enum import Enum


class PaymentStatus(str, Enum):
    """Payment lifecycle status values."""

    PENDING = "pending"
    REQUIRES_ACTION = "requires_action"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    CANCELED = "canceled"
    FAILED = "failed"
    NOT_PAID = "not_paid"


class RefundStatus(str, Enum):
    """Refund status values."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class RefundReason(str, Enum):
    """Why money is returned to the customer."""

    DISCOUNT = "discount"
    RETURN = "return"
    SWAP = "swap"
    CLAIM = "claim"
    CANCEL = "cancel"
    OTHER = "other"
