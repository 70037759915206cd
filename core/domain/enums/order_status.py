"""
Order Status Enum.
"""
from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle status values."""

    PENDING = "pending"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CANCELED = "canceled"
    REQUIRES_ACTION = "requires_action"
