"""
Inventory Adjustment Reason Enum.
"""
from enum import Enum


class AdjustmentReason(str, Enum):
    """Why stock on hand was changed manually."""

    RESTOCK = "restock"
    DAMAGED = "damaged"
    LOST = "lost"
    FOUND = "found"
    CORRECTION = "correction"
    RETURN_RECEIVED = "return_received"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    CYCLE_COUNT = "cycle_count"
    OTHER = "other"
