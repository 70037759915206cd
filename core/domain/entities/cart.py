"""
Cart aggregate root.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
- fastapi
"""
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..value_objects import ZERO, to_amount
from .base import new_id, utc_now


@dataclass
class CartLineItem:
    """Line of a cart. Prices always come from the catalog."""
    variant_id: str
    title: str
    quantity: int
    unit_price: Decimal
    currency_code: str
    id: str = field(default_factory=lambda: new_id("cali"))
    cart_id: Optional[str] = None
    sku: Optional[str] = None
    discount_total: Decimal = ZERO
    total: Decimal = ZERO

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError(f"Line item quantity must be positive, got {self.quantity}")
        self.unit_price = to_amount(self.unit_price)
        self.recalculate_total()

    def recalculate_total(self) -> None:
        self.total = to_amount(self.unit_price * self.quantity - self.discount_total)

    def update_quantity(self, quantity: int) -> None:
        """Business rule: quantity of an existing line stays positive."""
        if quantity <= 0:
            raise ValidationError(f"Line item quantity must be positive, got {quantity}")
        self.quantity = quantity
        self.recalculate_total()


@dataclass
class Cart:
    """
    Cart aggregate root.

    Holds line items and the derived totals:
    total = subtotal + tax + shipping - discount.
    """
    currency_code: str
    id: str = field(default_factory=lambda: new_id("cart"))
    customer_id: Optional[str] = None
    email: Optional[str] = None
    region_id: Optional[str] = None
    items: List[CartLineItem] = field(default_factory=list)
    subtotal: Decimal = ZERO
    tax_total: Decimal = ZERO
    shipping_total: Decimal = ZERO
    discount_total: Decimal = ZERO
    total: Decimal = ZERO
    completed_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def ensure_open(self) -> None:
        """Business rule: completed carts are immutable."""
        if self.is_completed:
            raise ConflictError(
                f"Cart {self.id} is already completed",
                code="CART_COMPLETED",
                details={"cart_id": self.id},
            )

    def find_item(self, item_id: str) -> Optional[CartLineItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def get_item(self, item_id: str) -> CartLineItem:
        item = self.find_item(item_id)
        if item is None:
            raise NotFoundError(
                f"Line item {item_id} not found in cart {self.id}",
                details={"cart_id": self.id, "item_id": item_id},
            )
        return item

    def find_item_by_variant(self, variant_id: str) -> Optional[CartLineItem]:
        return next((item for item in self.items if item.variant_id == variant_id), None)

    def add_item(self, item: CartLineItem) -> CartLineItem:
        """
        Add a line, merging into an existing line of the same variant.

        Returns:
            The line that now holds the quantity
        """
        self.ensure_open()
        existing = self.find_item_by_variant(item.variant_id)
        if existing is not None:
            existing.update_quantity(existing.quantity + item.quantity)
            self.recalculate_totals()
            return existing

        item.cart_id = self.id
        self.items.append(item)
        self.recalculate_totals()
        return item

    def remove_item(self, item_id: str) -> CartLineItem:
        self.ensure_open()
        item = self.get_item(item_id)
        self.items.remove(item)
        self.recalculate_totals()
        return item

    def snapshot_items(self) -> List[CartLineItem]:
        """Deep copy of the current lines, for compensation."""
        return deepcopy(self.items)

    def restore_items(self, items: List[CartLineItem]) -> None:
        self.items = deepcopy(items)
        self.recalculate_totals()

    def recalculate_totals(self) -> None:
        for item in self.items:
            item.recalculate_total()
        self.subtotal = to_amount(sum((item.total for item in self.items), ZERO))
        self.total = to_amount(
            self.subtotal + self.tax_total + self.shipping_total - self.discount_total
        )
        self.updated_at = utc_now()

    def complete(self) -> None:
        self.ensure_open()
        self.completed_at = utc_now()
