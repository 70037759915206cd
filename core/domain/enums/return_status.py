"""
Return Enums.
"""
from enum import Enum


class ReturnStatus(str, Enum):
    """Return (RMA) lifecycle status values."""

    REQUESTED = "requested"
    APPROVED = "approved"
    RECEIVED = "received"
    REFUNDED = "refunded"
    REJECTED = "rejected"
    CANCELED = "canceled"
