"""
Product catalog entities.

Only what cart workflows need: variants and their authoritative prices.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from ..value_objects import to_amount


@dataclass
class ProductVariant:
    """Purchasable variant with one price per currency."""
    id: str
    title: str
    sku: Optional[str] = None
    product_title: Optional[str] = None
    prices: Dict[str, Decimal] = field(default_factory=dict)
    manage_inventory: bool = False
    inventory_item_id: Optional[str] = None
    location_id: Optional[str] = None

    def price_for(self, currency_code: str) -> Optional[Decimal]:
        price = self.prices.get(currency_code.upper())
        return to_amount(price) if price is not None else None

    @property
    def display_title(self) -> str:
        if self.product_title:
            return f"{self.product_title} - {self.title}"
        return self.title
