"""
Inventory entities.

Stock is tracked per item and location:
available = stocked - reserved.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..exceptions import ConflictError, ValidationError
from .base import new_id, utc_now


@dataclass
class InventoryItem:
    sku: str
    id: str = field(default_factory=lambda: new_id("iitem"))
    title: Optional[str] = None


@dataclass
class InventoryLevel:
    """Quantities of one inventory item at one stock location."""
    inventory_item_id: str
    location_id: str
    stocked_quantity: int = 0
    reserved_quantity: int = 0
    incoming_quantity: int = 0
    id: str = field(default_factory=lambda: new_id("ilev"))
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def available_quantity(self) -> int:
        return self.stocked_quantity - self.reserved_quantity

    def has_available(self, quantity: int) -> bool:
        return self.available_quantity >= quantity

    def adjust_stock(self, adjustment: int) -> int:
        """
        Business rule: stock on hand never goes negative.

        Returns:
            The previous stocked quantity
        """
        if adjustment == 0:
            raise ValidationError("Adjustment must not be zero")
        previous = self.stocked_quantity
        new_quantity = previous + adjustment
        if new_quantity < 0:
            raise ConflictError(
                f"Adjustment {adjustment} would make stock negative "
                f"(current {previous}) on level {self.id}",
                code="INSUFFICIENT_STOCK",
                details={"inventory_level_id": self.id},
            )
        self.stocked_quantity = new_quantity
        self.updated_at = utc_now()
        return previous

    def set_stock(self, quantity: int) -> None:
        self.stocked_quantity = quantity
        self.updated_at = utc_now()

    def reserve(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError(f"Reservation quantity must be positive, got {quantity}")
        if not self.has_available(quantity):
            raise ConflictError(
                f"Only {self.available_quantity} available on level {self.id}, requested {quantity}",
                code="INSUFFICIENT_INVENTORY",
                details={"inventory_level_id": self.id},
            )
        self.reserved_quantity += quantity
        self.updated_at = utc_now()

    def release(self, quantity: int) -> None:
        self.reserved_quantity = max(0, self.reserved_quantity - quantity)
        self.updated_at = utc_now()

    def restore_reserved(self, quantity: int) -> None:
        """Put back a released reservation without checking availability."""
        self.reserved_quantity += quantity
        self.updated_at = utc_now()


@dataclass
class InventoryReservation:
    """Stock held for an order line until fulfillment or cancellation."""
    inventory_level_id: str
    quantity: int
    order_id: Optional[str] = None
    line_item_id: Optional[str] = None
    id: str = field(default_factory=lambda: new_id("resitem"))
    released_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.released_at is None

    def release(self) -> None:
        self.released_at = utc_now()

    def reactivate(self) -> None:
        self.released_at = None
