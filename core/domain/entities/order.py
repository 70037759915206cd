"""
Order aggregate root.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
- fastapi
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..enums import OrderStatus, PaymentStatus
from ..exceptions import ConflictError
from ..value_objects import ZERO, to_amount
from .base import new_id, utc_now


@dataclass
class OrderLineItem:
    variant_id: str
    title: str
    quantity: int
    unit_price: Decimal
    id: str = field(default_factory=lambda: new_id("ordli"))


@dataclass
class Fulfillment:
    """Shipment of some or all order lines. Canceled fulfillments are inactive."""
    id: str = field(default_factory=lambda: new_id("ful"))
    shipped_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.canceled_at is None


@dataclass
class Order:
    """Order placed from a completed cart."""
    currency_code: str
    id: str = field(default_factory=lambda: new_id("order"))
    display_id: Optional[int] = None
    cart_id: Optional[str] = None
    customer_id: Optional[str] = None
    email: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.NOT_PAID
    items: List[OrderLineItem] = field(default_factory=list)
    fulfillments: List[Fulfillment] = field(default_factory=list)
    total: Decimal = ZERO
    created_at: datetime = field(default_factory=utc_now)
    canceled_at: Optional[datetime] = None

    def __post_init__(self):
        self.total = to_amount(self.total)

    @property
    def has_active_fulfillments(self) -> bool:
        return any(f.is_active for f in self.fulfillments)

    def ensure_cancelable(self) -> None:
        """Business rule: canceled or (partially) fulfilled orders cannot be canceled."""
        if self.status == OrderStatus.CANCELED:
            raise ConflictError(
                f"Order {self.id} is already canceled",
                code="ORDER_ALREADY_CANCELED",
                details={"order_id": self.id},
            )
        if self.has_active_fulfillments:
            raise ConflictError(
                f"Order {self.id} has active fulfillments; cancel them first",
                code="ORDER_HAS_FULFILLMENTS",
                details={"order_id": self.id},
            )

    def cancel(self) -> None:
        self.ensure_cancelable()
        self.status = OrderStatus.CANCELED
        self.canceled_at = utc_now()

    def restore_status(self, status: OrderStatus) -> None:
        self.status = status
        if status != OrderStatus.CANCELED:
            self.canceled_at = None
