"""
In-memory inventory repository.
"""
from copy import deepcopy
from typing import Dict, Iterable, List, Optional
import logging

from core.domain.entities.inventory import InventoryItem, InventoryLevel, InventoryReservation
from core.domain.repositories.inventory_repository import InventoryRepository


logger = logging.getLogger(__name__)


class InMemoryInventoryRepository(InventoryRepository):

    def __init__(
        self,
        items: Iterable[InventoryItem] = (),
        levels: Iterable[InventoryLevel] = (),
        reservations: Iterable[InventoryReservation] = (),
    ):
        self._items: Dict[str, InventoryItem] = {i.id: deepcopy(i) for i in items}
        self._levels: Dict[str, InventoryLevel] = {l.id: deepcopy(l) for l in levels}
        self._reservations: Dict[str, InventoryReservation] = {
            r.id: deepcopy(r) for r in reservations
        }

    async def find_item_by_sku(self, sku: str) -> Optional[InventoryItem]:
        item = next((i for i in self._items.values() if i.sku == sku), None)
        return deepcopy(item) if item else None

    async def find_level_by_id(self, level_id: str) -> Optional[InventoryLevel]:
        level = self._levels.get(level_id)
        return deepcopy(level) if level else None

    async def find_level(self, inventory_item_id: str, location_id: str) -> Optional[InventoryLevel]:
        level = next(
            (
                l for l in self._levels.values()
                if l.inventory_item_id == inventory_item_id and l.location_id == location_id
            ),
            None,
        )
        return deepcopy(level) if level else None

    async def save_level(self, level: InventoryLevel) -> InventoryLevel:
        self._levels[level.id] = deepcopy(level)
        logger.debug(
            f"Inventory level saved: {level.id} "
            f"(stocked {level.stocked_quantity}, reserved {level.reserved_quantity})"
        )
        return level

    async def find_reservations_by_order(
        self, order_id: str, active_only: bool = True
    ) -> List[InventoryReservation]:
        return [
            deepcopy(r) for r in self._reservations.values()
            if r.order_id == order_id and (r.is_active or not active_only)
        ]

    async def find_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        reservation = self._reservations.get(reservation_id)
        return deepcopy(reservation) if reservation else None

    async def save_reservation(self, reservation: InventoryReservation) -> InventoryReservation:
        self._reservations[reservation.id] = deepcopy(reservation)
        return reservation
