"""
Capture-payment workflow.

Captures authorized funds, in full or in part. Only AUTHORIZED payments
are capturable; anything else fails before the provider is called and
leaves the payment untouched.
"""
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Optional

from core.application.interfaces import IPaymentProviderGateway, ProviderResult
from core.domain.entities.payment import Payment
from core.domain.enums import PaymentStatus, RefundReason
from core.domain.event_bus import EventBus
from core.domain.events import PaymentCapturedEvent
from core.domain.exceptions import ConflictError
from core.domain.repositories import PaymentRepository
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, payment_lock_key
from .steps import PAYMENT, ensure_provider_success, get_payment_step, resolve_amount

logger = logging.getLogger(__name__)


@dataclass
class CapturePaymentInput:
    payment_id: str
    amount: Optional[Decimal] = None


@dataclass
class _PreviousCaptureState:
    status: PaymentStatus
    captured_amount: Optional[Decimal]


CAPTURE_AMOUNT = ContextKey[Decimal]("capture_amount")
CAPTURE_RESULT = ContextKey[ProviderResult]("capture_result")
CAPTURE_ROLLBACK_REFUND = ContextKey[str]("capture_rollback_refund")


class CapturePaymentWorkflow(Workflow[CapturePaymentInput, Payment]):
    name = WorkflowNames.CAPTURE_PAYMENT
    input_type = CapturePaymentInput
    output_type = Payment

    def __init__(self, payments: PaymentRepository, gateway: IPaymentProviderGateway, event_bus: EventBus):
        self._payments = payments
        self._gateway = gateway
        self._event_bus = event_bus

        self.get_payment = get_payment_step(payments)
        self.validate_payment = create_step("validate-payment-capturable", self._validate)
        self.capture_with_provider = create_step(
            "capture-with-provider", self._capture, self._refund_capture
        )
        self.mark_captured = create_step(
            "mark-payment-captured", self._mark_captured, self._restore_authorized
        )
        self.emit_event = create_step("emit-payment-captured", self._emit)

    def lock_key_for(self, input_: CapturePaymentInput) -> str:
        return payment_lock_key(input_.payment_id)

    async def execute(self, input_: CapturePaymentInput, ctx: WorkflowContext) -> Payment:
        payment = (await self.get_payment.invoke(input_.payment_id, ctx)).data
        amount = (await self.validate_payment.invoke(input_.amount, ctx)).data
        result = (await self.capture_with_provider.invoke(amount, ctx)).data
        payment = (await self.mark_captured.invoke(result, ctx)).data
        await self.emit_event.invoke(payment, ctx)
        return payment

    async def _validate(self, requested: Optional[Decimal], ctx: WorkflowContext) -> StepResponse[Decimal]:
        payment = ctx.require(PAYMENT)
        if payment.status != PaymentStatus.AUTHORIZED:
            raise ConflictError(
                f"Payment {payment.id} must be authorized to capture, status is {payment.status.value}",
                code="INVALID_PAYMENT_STATE",
                details={"payment_id": payment.id, "status": payment.status.value},
            )
        if payment.is_captured:
            raise ConflictError(
                f"Payment {payment.id} is already captured",
                code="ALREADY_CAPTURED",
                details={"payment_id": payment.id},
            )
        amount = resolve_amount(payment, requested, payment.amount)
        ctx.set(CAPTURE_AMOUNT, amount)
        return StepResponse.of(amount)

    async def _capture(self, amount: Decimal, ctx: WorkflowContext) -> StepResponse[ProviderResult]:
        payment = ctx.require(PAYMENT)
        result = ensure_provider_success(
            await self._gateway.capture(payment, payment.money(amount)), "capture", payment
        )
        ctx.set(CAPTURE_RESULT, result)
        return StepResponse.of(result)

    async def _refund_capture(
        self, amount: Decimal, result: ProviderResult, _data: object, ctx: WorkflowContext
    ) -> None:
        payment = ctx.require(PAYMENT)
        if ctx.has(CAPTURE_ROLLBACK_REFUND):
            logger.info(
                f"Captured funds of payment {payment.id} already returned: {ctx.get(CAPTURE_ROLLBACK_REFUND)}"
            )
            return
        refund = await self._gateway.refund(
            payment, payment.money(amount), RefundReason.OTHER, note="capture rolled back"
        )
        if not refund.success:
            logger.error(f"Could not return captured funds of payment {payment.id}: {refund.error}")
            return
        ctx.set(CAPTURE_ROLLBACK_REFUND, refund.provider_reference or "")
        logger.info(f"Returned captured funds of payment {payment.id}: {refund.provider_reference}")

    async def _mark_captured(self, result: ProviderResult, ctx: WorkflowContext) -> StepResponse[Payment]:
        payment = ctx.require(PAYMENT)
        previous = _PreviousCaptureState(status=payment.status, captured_amount=payment.captured_amount)
        payment.capture(amount=ctx.require(CAPTURE_AMOUNT), data=result.provider_data)
        await self._payments.save(payment)
        return StepResponse.of(payment, compensation_data=previous)

    async def _restore_authorized(
        self, result: ProviderResult, payment: Payment, previous: _PreviousCaptureState, ctx: WorkflowContext
    ) -> None:
        current = await self._payments.find_by_id(payment.id)
        if current is None or current.status != PaymentStatus.CAPTURED:
            return
        current.status = previous.status
        current.captured_amount = previous.captured_amount
        current.captured_at = None
        await self._payments.save(current)
        logger.info(f"Restored payment {payment.id} to {previous.status.value}")

    async def _emit(self, payment: Payment, ctx: WorkflowContext) -> None:
        await self._event_bus.publish(
            PaymentCapturedEvent(
                payment_id=payment.id,
                order_id=payment.order_id,
                amount=payment.captured_amount or payment.amount,
                currency_code=payment.currency_code,
                provider_id=payment.provider_id,
                execution_id=ctx.execution_id,
                correlation_id=ctx.correlation_id,
            )
        )
