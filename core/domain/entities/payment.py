"""
Payment and Refund entities.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
- fastapi
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from ..enums import PaymentStatus, RefundReason, RefundStatus
from ..exceptions import ConflictError
from ..value_objects import ZERO, Money, to_amount
from .base import new_id, utc_now

REFUNDABLE_STATUSES = (PaymentStatus.CAPTURED, PaymentStatus.PARTIALLY_REFUNDED)


@dataclass
class Payment:
    """
    Payment against an order or cart, processed by one provider.

    Lifecycle: PENDING -> AUTHORIZED -> CAPTURED -> (PARTIALLY_)REFUNDED,
    with CANCELED reachable from PENDING and AUTHORIZED.
    """
    amount: Decimal
    currency_code: str
    provider_id: str
    id: str = field(default_factory=lambda: new_id("pay"))
    order_id: Optional[str] = None
    cart_id: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    external_id: Optional[str] = None
    amount_refunded: Decimal = ZERO
    captured_amount: Optional[Decimal] = None
    data: Dict[str, Any] = field(default_factory=dict)
    authorized_at: Optional[datetime] = None
    captured_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None

    def __post_init__(self):
        self.amount = to_amount(self.amount)
        self.amount_refunded = to_amount(self.amount_refunded)

    def money(self, amount: Optional[Decimal] = None) -> Money:
        return Money(amount=self.amount if amount is None else amount, currency=self.currency_code)

    @property
    def is_captured(self) -> bool:
        return self.captured_at is not None

    @property
    def refundable_amount(self) -> Decimal:
        """Captured amount not yet refunded."""
        base = self.captured_amount if self.captured_amount is not None else self.amount
        return to_amount(base - self.amount_refunded)

    def _invalid(self, action: str) -> ConflictError:
        return ConflictError(
            f"Cannot {action} payment {self.id} in status {self.status.value}",
            code="INVALID_PAYMENT_STATE",
            details={"payment_id": self.id, "status": self.status.value},
        )

    def authorize(self, external_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None) -> None:
        """Business rule: only pending payments can be authorized."""
        if self.status != PaymentStatus.PENDING:
            raise self._invalid("authorize")
        self.status = PaymentStatus.AUTHORIZED
        self.authorized_at = utc_now()
        if external_id:
            self.external_id = external_id
        if data:
            self.data.update(data)

    def capture(self, amount: Optional[Decimal] = None, data: Optional[Dict[str, Any]] = None) -> None:
        """Business rule: only authorized, uncaptured payments can be captured."""
        if self.status != PaymentStatus.AUTHORIZED or self.is_captured:
            raise self._invalid("capture")
        self.status = PaymentStatus.CAPTURED
        self.captured_at = utc_now()
        self.captured_amount = to_amount(amount) if amount is not None else self.amount
        if data:
            self.data.update(data)

    def cancel(self) -> None:
        if self.status not in (PaymentStatus.PENDING, PaymentStatus.AUTHORIZED):
            raise self._invalid("cancel")
        self.status = PaymentStatus.CANCELED
        self.canceled_at = utc_now()

    def record_refund(self, amount: Decimal) -> None:
        """Add a successful refund and derive the refunded status."""
        if self.status not in REFUNDABLE_STATUSES:
            raise self._invalid("refund")
        amount = to_amount(amount)
        if amount > self.refundable_amount:
            raise ConflictError(
                f"Refund of {amount} exceeds refundable {self.refundable_amount} on payment {self.id}",
                code="REFUND_EXCEEDS_CAPTURED",
                details={"payment_id": self.id},
            )
        self.amount_refunded = to_amount(self.amount_refunded + amount)
        self.status = (
            PaymentStatus.REFUNDED if self.refundable_amount == ZERO
            else PaymentStatus.PARTIALLY_REFUNDED
        )


@dataclass
class Refund:
    """Money returned against a captured payment."""
    payment_id: str
    amount: Decimal
    currency_code: str
    reason: RefundReason = RefundReason.OTHER
    id: str = field(default_factory=lambda: new_id("ref"))
    order_id: Optional[str] = None
    note: Optional[str] = None
    status: RefundStatus = RefundStatus.PENDING
    provider_refund_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.amount = to_amount(self.amount)

    def succeed(self, provider_refund_id: Optional[str] = None) -> None:
        self.status = RefundStatus.SUCCEEDED
        self.provider_refund_id = provider_refund_id

    def cancel(self) -> None:
        self.status = RefundStatus.CANCELED
