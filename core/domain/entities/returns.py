"""
Return (RMA) aggregate.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..enums import ReturnStatus
from ..exceptions import ConflictError
from ..value_objects import ZERO, to_amount
from .base import new_id, utc_now


@dataclass
class ReturnItem:
    variant_id: str
    quantity: int
    unit_price: Decimal
    id: str = field(default_factory=lambda: new_id("retitem"))

    @property
    def total(self) -> Decimal:
        return to_amount(self.unit_price * self.quantity)


@dataclass
class Return:
    """Customer return of order items, refunded once received."""
    order_id: str
    currency_code: str
    id: str = field(default_factory=lambda: new_id("ret"))
    status: ReturnStatus = ReturnStatus.REQUESTED
    items: List[ReturnItem] = field(default_factory=list)
    refund_amount: Decimal = ZERO
    refund_id: Optional[str] = None
    received_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    def __post_init__(self):
        if self.refund_amount == ZERO and self.items:
            self.refund_amount = to_amount(sum((i.total for i in self.items), ZERO))
        self.refund_amount = to_amount(self.refund_amount)

    @property
    def can_process_refund(self) -> bool:
        return self.status == ReturnStatus.RECEIVED and self.refund_amount > ZERO

    def receive(self) -> None:
        if self.status not in (ReturnStatus.REQUESTED, ReturnStatus.APPROVED):
            raise ConflictError(f"Return {self.id} cannot be received in status {self.status.value}")
        self.status = ReturnStatus.RECEIVED
        self.received_at = utc_now()

    def mark_refunded(self, refund_id: str) -> None:
        """Business rule: only received returns are refunded."""
        if self.status != ReturnStatus.RECEIVED:
            raise ConflictError(
                f"Return {self.id} must be received before refund, status is {self.status.value}",
                code="RETURN_NOT_RECEIVED",
                details={"return_id": self.id},
            )
        self.status = ReturnStatus.REFUNDED
        self.refund_id = refund_id
        self.refunded_at = utc_now()

    def revert_refund(self) -> None:
        self.status = ReturnStatus.RECEIVED
        self.refund_id = None
        self.refunded_at = None
