"""
Payment Domain Events.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .base import DomainEvent


@dataclass
class PaymentAuthorizedEvent(DomainEvent):
    """Provider authorized the payment; funds are held."""

    payment_id: str = ""
    order_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    currency_code: str = ""
    provider_id: str = ""

    def __post_init__(self):
        if not self.aggregate_id:
            object.__setattr__(self, 'aggregate_id', self.payment_id)
        super().__post_init__()


@dataclass
class PaymentCapturedEvent(DomainEvent):
    """Authorized funds were captured."""

    payment_id: str = ""
    order_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    currency_code: str = ""
    provider_id: str = ""

    def __post_init__(self):
        if not self.aggregate_id:
            object.__setattr__(self, 'aggregate_id', self.payment_id)
        super().__post_init__()


@dataclass
class PaymentRefundedEvent(DomainEvent):
    """Part or all of a captured payment was refunded."""

    payment_id: str = ""
    refund_id: str = ""
    order_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    currency_code: str = ""
    reason: str = ""
    is_full_refund: bool = False

    def __post_init__(self):
        if not self.aggregate_id:
            object.__setattr__(self, 'aggregate_id', self.payment_id)
        super().__post_init__()
