"""Steps shared by the payment workflows."""

from decimal import Decimal
from typing import Optional

from core.domain.entities.payment import Payment
from core.domain.exceptions import InfrastructureError, NotFoundError, ValidationError
from core.domain.repositories import PaymentRepository
from core.domain.value_objects import ZERO, to_amount
from core.application.interfaces import ProviderResult
from orchestration import ContextKey, Step, StepResponse, WorkflowContext, create_step

PAYMENT = ContextKey[Payment]("payment")


def get_payment_step(payments: PaymentRepository) -> Step[str, Payment]:
    async def get_payment(payment_id: str, ctx: WorkflowContext) -> StepResponse[Payment]:
        payment = await payments.find_by_id(payment_id)
        if payment is None:
            raise NotFoundError(
                f"Payment not found: {payment_id}",
                code="PAYMENT_NOT_FOUND",
                details={"payment_id": payment_id},
            )
        ctx.set(PAYMENT, payment)
        return StepResponse.of(payment)

    return create_step("get-payment", get_payment)


def resolve_amount(payment: Payment, requested: Optional[Decimal], ceiling: Decimal) -> Decimal:
    """Requested amount, or the ceiling when none is given, validated against it."""
    amount = to_amount(requested) if requested is not None else ceiling
    if amount <= ZERO:
        raise ValidationError(f"Amount must be positive, got {amount}", code="INVALID_AMOUNT")
    if amount > ceiling:
        raise ValidationError(
            f"Amount {amount} exceeds {ceiling} on payment {payment.id}",
            code="AMOUNT_EXCEEDS_PAYMENT",
            details={"payment_id": payment.id},
        )
    return amount


def ensure_provider_success(result: ProviderResult, operation: str, payment: Payment) -> ProviderResult:
    if not result.success:
        raise InfrastructureError(
            f"Payment {operation} failed for {payment.id}: {result.error or 'unknown provider error'}",
            code="PROVIDER_DECLINED",
            details={"payment_id": payment.id, "provider_id": payment.provider_id},
        )
    return result
