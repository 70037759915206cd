"""Repository interfaces for the Cart aggregate and the product catalog."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.cart import Cart
from ..entities.product import ProductVariant


class CartRepository(ABC):
    """Abstract repository for Cart aggregate persistence."""

    @abstractmethod
    async def find_by_id(self, cart_id: str) -> Optional[Cart]:
        """Retrieve cart with its line items.

        Args:
            cart_id: Cart identifier

        Returns:
            Cart if found, None otherwise
        """
        pass

    @abstractmethod
    async def save(self, cart: Cart) -> Cart:
        """Persist cart and its line items."""
        pass


class ProductVariantRepository(ABC):
    """Read access to the catalog, the only source of prices."""

    @abstractmethod
    async def find_by_id(self, variant_id: str) -> Optional[ProductVariant]:
        pass

    @abstractmethod
    async def find_by_ids(self, variant_ids: List[str]) -> List[ProductVariant]:
        """Variants that exist among the given ids, in no particular order."""
        pass
