"""
Order Domain Events.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from .base import DomainEvent


@dataclass
class OrderCanceledEvent(DomainEvent):
    """
    Order was canceled.

    Uncaptured payments were canceled, captured ones refunded and
    inventory reservations released before this event is published.
    """

    order_id: str = ""
    reason: Optional[str] = None
    canceled_by: Optional[str] = None
    refunded_amount: Decimal = Decimal("0")
    canceled_payment_ids: List[str] = field(default_factory=list)
    refund_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.aggregate_id:
            object.__setattr__(self, 'aggregate_id', self.order_id)
        super().__post_init__()


@dataclass
class ReturnRefundedEvent(DomainEvent):
    """A received return was refunded to the customer."""

    return_id: str = ""
    order_id: str = ""
    refund_id: str = ""
    amount: Decimal = Decimal("0")
    currency_code: str = ""

    def __post_init__(self):
        if not self.aggregate_id:
            object.__setattr__(self, 'aggregate_id', self.return_id)
        super().__post_init__()
