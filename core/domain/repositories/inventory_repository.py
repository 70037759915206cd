"""Repository interface for inventory items, levels and reservations."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.inventory import InventoryItem, InventoryLevel, InventoryReservation


class InventoryRepository(ABC):

    @abstractmethod
    async def find_item_by_sku(self, sku: str) -> Optional[InventoryItem]:
        pass

    @abstractmethod
    async def find_level_by_id(self, level_id: str) -> Optional[InventoryLevel]:
        pass

    @abstractmethod
    async def find_level(self, inventory_item_id: str, location_id: str) -> Optional[InventoryLevel]:
        """Level of an item at a location."""
        pass

    @abstractmethod
    async def save_level(self, level: InventoryLevel) -> InventoryLevel:
        pass

    @abstractmethod
    async def find_reservations_by_order(
        self, order_id: str, active_only: bool = True
    ) -> List[InventoryReservation]:
        pass

    @abstractmethod
    async def find_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        pass

    @abstractmethod
    async def save_reservation(self, reservation: InventoryReservation) -> InventoryReservation:
        pass
