"""
In-memory Cart and catalog repositories.

Entities are copied on the way in and out, so a workflow only changes
stored state by calling save.
"""
from copy import deepcopy
from typing import Dict, Iterable, List, Optional
import logging

from core.domain.entities.cart import Cart
from core.domain.entities.product import ProductVariant
from core.domain.repositories.cart_repository import CartRepository, ProductVariantRepository


logger = logging.getLogger(__name__)


class InMemoryCartRepository(CartRepository):
    """Dictionary-backed CartRepository for tests and local runs."""

    def __init__(self, carts: Iterable[Cart] = ()):
        self._storage: Dict[str, Cart] = {cart.id: deepcopy(cart) for cart in carts}

    async def find_by_id(self, cart_id: str) -> Optional[Cart]:
        cart = self._storage.get(cart_id)
        if cart is None:
            logger.info(f"Cart not found: {cart_id}")
            return None
        return deepcopy(cart)

    async def save(self, cart: Cart) -> Cart:
        self._storage[cart.id] = deepcopy(cart)
        logger.debug(f"Cart saved: {cart.id} ({len(cart.items)} items, total {cart.total})")
        return cart


class InMemoryProductVariantRepository(ProductVariantRepository):

    def __init__(self, variants: Iterable[ProductVariant] = ()):
        self._storage: Dict[str, ProductVariant] = {v.id: deepcopy(v) for v in variants}

    def add(self, variant: ProductVariant) -> None:
        self._storage[variant.id] = deepcopy(variant)

    async def find_by_id(self, variant_id: str) -> Optional[ProductVariant]:
        variant = self._storage.get(variant_id)
        return deepcopy(variant) if variant else None

    async def find_by_ids(self, variant_ids: List[str]) -> List[ProductVariant]:
        return [deepcopy(self._storage[v]) for v in dict.fromkeys(variant_ids) if v in self._storage]
