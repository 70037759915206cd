"""
Inventory Domain Events.
"""
from dataclasses import dataclass
from typing import Optional

from .base import DomainEvent


@dataclass
class InventoryAdjustedEvent(DomainEvent):
    """Stock on hand was changed manually."""

    inventory_level_id: str = ""
    inventory_item_id: str = ""
    location_id: str = ""
    adjustment: int = 0
    previous_quantity: int = 0
    new_quantity: int = 0
    reason: str = ""
    note: Optional[str] = None
    adjusted_by: Optional[str] = None

    def __post_init__(self):
        if not self.aggregate_id:
            object.__setattr__(self, 'aggregate_id', self.inventory_level_id)
        super().__post_init__()
