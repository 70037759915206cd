"""
In-memory Order repository.

This is an in-memory implementation for testing and demos.
"""
from copy import deepcopy
from typing import Dict, Iterable, List, Optional
import logging

from core.domain.entities.order import Order
from core.domain.repositories.order_repository import OrderRepository


logger = logging.getLogger(__name__)


class InMemoryOrderRepository(OrderRepository):
    """
    In-memory implementation of OrderRepository.

    Stores orders in a dictionary for testing/demo purposes.
    """

    def __init__(self, orders: Iterable[Order] = ()):
        self._storage: Dict[str, Order] = {o.id: deepcopy(o) for o in orders}

    async def save(self, order: Order) -> Order:
        self._storage[order.id] = deepcopy(order)
        logger.info(f"Order saved: {order.id} (status: {order.status.value})")
        return order

    async def find_by_id(self, order_id: str) -> Optional[Order]:
        order = self._storage.get(order_id)
        if order is None:
            logger.info(f"Order not found: {order_id}")
            return None
        return deepcopy(order)

    async def find_all(self, limit: int = 100) -> List[Order]:
        orders = sorted(self._storage.values(), key=lambda o: o.created_at, reverse=True)
        return [deepcopy(o) for o in orders[:limit]]
