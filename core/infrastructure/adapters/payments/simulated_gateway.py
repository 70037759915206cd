"""
Simulated payment provider gateway.

Produces provider-shaped responses for stripe, paypal, square, braintree,
adyen and manual payments without any network calls. Unknown providers
are handled like manual payments.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import uuid

from core.application.interfaces import IPaymentProviderGateway, ProviderResult
from core.domain.entities.payment import Payment
from core.domain.enums import RefundReason
from core.domain.value_objects import Money


logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("stripe", "paypal", "square", "braintree", "adyen", "manual")

# Provider id -> prefix of the references it hands out
_REFERENCE_PREFIXES = {
    "stripe": {"authorize": "pi", "capture": "ch", "refund": "re"},
    "paypal": {"authorize": "PAYID", "capture": "CAP", "refund": "REF"},
    "square": {"authorize": "sq_pay", "capture": "sq_cap", "refund": "sq_ref"},
    "braintree": {"authorize": "bt_txn", "capture": "bt_stl", "refund": "bt_ref"},
    "adyen": {"authorize": "psp", "capture": "cap", "refund": "rfd"},
    "manual": {"authorize": "manual_auth", "capture": "manual_cap", "refund": "manual_ref"},
}


_TIMESTAMP_KEYS = {"authorize": "authorized_at", "capture": "captured_at", "refund": "refunded_at"}


class SimulatedPaymentGateway(IPaymentProviderGateway):
    """
    In-process stand-in for real payment providers.

    ``failures`` maps an operation name (authorize, capture, refund, void)
    to the error message the provider should answer with, which lets
    callers exercise the compensation paths.
    """

    def __init__(self, failures: Optional[Dict[str, str]] = None):
        self._failures = dict(failures or {})
        self.calls: list = []

    def fail(self, operation: str, message: str) -> None:
        self._failures[operation] = message

    def recover(self, operation: str) -> None:
        self._failures.pop(operation, None)

    def _provider(self, payment: Payment) -> str:
        provider = payment.provider_id.lower()
        if provider not in SUPPORTED_PROVIDERS:
            logger.warning(f"Unknown payment provider '{payment.provider_id}', treating as manual")
            return "manual"
        return provider

    def _reference(self, provider: str, operation: str) -> str:
        return f"{_REFERENCE_PREFIXES[provider][operation]}_{uuid.uuid4().hex[:16]}"

    def _declined(self, operation: str, payment: Payment) -> Optional[ProviderResult]:
        message = self._failures.get(operation)
        if message is None:
            return None
        logger.warning(f"Provider declined {operation} for payment {payment.id}: {message}")
        return ProviderResult(success=False, error=message)

    def _provider_data(self, provider: str, operation: str, reference: str, amount: Money) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        data: Dict[str, Any] = {
            f"{operation}_id": reference,
            _TIMESTAMP_KEYS[operation]: now,
            "amount": str(amount.amount),
            "currency": amount.currency,
        }
        if provider == "stripe":
            data["amount_minor"] = amount.minor_units()
        return data

    async def authorize(self, payment: Payment, amount: Money) -> ProviderResult:
        self.calls.append(("authorize", payment.id, amount))
        declined = self._declined("authorize", payment)
        if declined:
            return declined

        provider = self._provider(payment)
        reference = self._reference(provider, "authorize")
        logger.info(f"Authorized {amount} with {provider} for payment {payment.id}: {reference}")
        return ProviderResult(
            success=True,
            provider_reference=reference,
            amount=amount.amount,
            provider_data=self._provider_data(provider, "authorize", reference, amount),
        )

    async def capture(self, payment: Payment, amount: Money) -> ProviderResult:
        self.calls.append(("capture", payment.id, amount))
        declined = self._declined("capture", payment)
        if declined:
            return declined

        provider = self._provider(payment)
        if provider == "stripe" and not payment.external_id:
            return ProviderResult(success=False, error="Missing Stripe PaymentIntent id")

        reference = self._reference(provider, "capture")
        logger.info(f"Captured {amount} with {provider} for payment {payment.id}: {reference}")
        data = self._provider_data(provider, "capture", reference, amount)
        data["amount_captured"] = str(amount.amount)
        return ProviderResult(
            success=True,
            provider_reference=reference,
            amount=amount.amount,
            provider_data=data,
        )

    async def refund(
        self,
        payment: Payment,
        amount: Money,
        reason: RefundReason,
        note: Optional[str] = None,
    ) -> ProviderResult:
        self.calls.append(("refund", payment.id, amount))
        declined = self._declined("refund", payment)
        if declined:
            return declined

        provider = self._provider(payment)
        reference = self._reference(provider, "refund")
        logger.info(f"Refunded {amount} with {provider} for payment {payment.id}: {reference}")
        data = self._provider_data(provider, "refund", reference, amount)
        data["reason"] = reason.value
        if note:
            data["note"] = note
        return ProviderResult(
            success=True,
            provider_reference=reference,
            amount=amount.amount,
            provider_data=data,
        )

    async def void(self, payment: Payment) -> ProviderResult:
        self.calls.append(("void", payment.id, None))
        declined = self._declined("void", payment)
        if declined:
            return declined
        logger.info(f"Voided authorization {payment.external_id} for payment {payment.id}")
        return ProviderResult(success=True, provider_reference=payment.external_id)
