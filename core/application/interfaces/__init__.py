"""Application layer interfaces."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from core.domain.entities.payment import Payment
from core.domain.enums import RefundReason
from core.domain.value_objects import Money


@dataclass
class ProviderResult:
    """
    Outcome of a call to a payment provider.

    ``success`` decides whether the calling step raises and triggers
    compensation; ``error`` carries the provider's message when it is False.
    """
    success: bool
    provider_reference: Optional[str] = None
    amount: Optional[Decimal] = None
    provider_data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    requires_more: bool = False


class IPaymentProviderGateway(ABC):
    """
    Interface for payment provider operations.

    Implementations talk to stripe, paypal and friends; workflows only see
    ProviderResult records and never provider SDK types.
    """

    @abstractmethod
    async def authorize(self, payment: Payment, amount: Money) -> ProviderResult:
        """
        Authorize (hold) funds for a payment.

        Args:
            payment: Payment being authorized
            amount: Amount to hold

        Returns:
            ProviderResult; provider_reference is the authorization id
        """
        pass

    @abstractmethod
    async def capture(self, payment: Payment, amount: Money) -> ProviderResult:
        """
        Capture previously authorized funds.

        Returns:
            ProviderResult; provider_reference is the capture id
        """
        pass

    @abstractmethod
    async def refund(
        self,
        payment: Payment,
        amount: Money,
        reason: RefundReason,
        note: Optional[str] = None,
    ) -> ProviderResult:
        """
        Return captured funds to the customer.

        Returns:
            ProviderResult; provider_reference is the provider refund id
        """
        pass

    @abstractmethod
    async def void(self, payment: Payment) -> ProviderResult:
        """Release an authorization that will never be captured."""
        pass


__all__ = ["IPaymentProviderGateway", "ProviderResult"]
