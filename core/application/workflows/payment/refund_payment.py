"""
Refund-payment workflow.

Refunds part or all of a captured payment. Every step receives what it
needs as input, so other workflows can run this body inline within their
own saga (order cancellation, return refunds) and still compensate it.
"""
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Optional

from core.application.interfaces import IPaymentProviderGateway, ProviderResult
from core.domain.entities.payment import REFUNDABLE_STATUSES, Payment, Refund
from core.domain.enums import PaymentStatus, RefundReason
from core.domain.event_bus import EventBus
from core.domain.events import PaymentRefundedEvent
from core.domain.exceptions import ConflictError, NotFoundError, ValidationError
from core.domain.repositories import PaymentRepository, RefundRepository
from core.domain.value_objects import ZERO, to_amount
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, payment_lock_key
from .steps import ensure_provider_success

logger = logging.getLogger(__name__)


@dataclass
class RefundPaymentInput:
    payment_id: str
    amount: Optional[Decimal] = None
    reason: RefundReason = RefundReason.OTHER
    note: Optional[str] = None


@dataclass
class RefundPlan:
    payment: Payment
    amount: Decimal
    reason: RefundReason
    note: Optional[str] = None
    provider_result: Optional[ProviderResult] = None


@dataclass
class _PreviousRefundState:
    status: PaymentStatus
    amount_refunded: Decimal


REFUND = ContextKey[Refund]("refund")


class RefundPaymentWorkflow(Workflow[RefundPaymentInput, Refund]):
    name = WorkflowNames.REFUND_PAYMENT
    input_type = RefundPaymentInput
    output_type = Refund

    def __init__(
        self,
        payments: PaymentRepository,
        refunds: RefundRepository,
        gateway: IPaymentProviderGateway,
        event_bus: EventBus,
    ):
        self._payments = payments
        self._refunds = refunds
        self._gateway = gateway
        self._event_bus = event_bus

        self.load_payment = create_step("get-refundable-payment", self._load_payment)
        self.validate_refund = create_step("validate-refund-amount", self._validate)
        self.refund_with_provider = create_step("refund-with-provider", self._refund_with_provider)
        self.create_refund = create_step("create-refund", self._create_refund, self._delete_refund)
        self.update_payment = create_step(
            "update-payment-refunded", self._update_payment, self._restore_payment
        )
        self.emit_event = create_step("emit-payment-refunded", self._emit)

    def lock_key_for(self, input_: RefundPaymentInput) -> str:
        return payment_lock_key(input_.payment_id)

    async def execute(self, input_: RefundPaymentInput, ctx: WorkflowContext) -> Refund:
        # no-op when run as its own execution, which already holds this key
        await ctx.lock(payment_lock_key(input_.payment_id))
        payment = (await self.load_payment.invoke(input_.payment_id, ctx)).data
        plan = (await self.validate_refund.invoke((payment, input_), ctx)).data
        plan = (await self.refund_with_provider.invoke(plan, ctx)).data
        refund = (await self.create_refund.invoke(plan, ctx)).data
        await self.update_payment.invoke(plan, ctx)
        await self.emit_event.invoke((plan, refund), ctx)
        ctx.set(REFUND, refund)
        return refund

    async def _load_payment(self, payment_id: str, ctx: WorkflowContext) -> StepResponse[Payment]:
        payment = await self._payments.find_by_id(payment_id)
        if payment is None:
            raise NotFoundError(
                f"Payment not found: {payment_id}",
                code="PAYMENT_NOT_FOUND",
                details={"payment_id": payment_id},
            )
        return StepResponse.of(payment)

    async def _validate(self, request: tuple, ctx: WorkflowContext) -> StepResponse[RefundPlan]:
        payment, input_ = request
        if payment.status not in REFUNDABLE_STATUSES:
            raise ConflictError(
                f"Payment {payment.id} must be captured to refund, status is {payment.status.value}",
                code="INVALID_PAYMENT_STATE",
                details={"payment_id": payment.id, "status": payment.status.value},
            )

        refundable = payment.refundable_amount
        amount = to_amount(input_.amount) if input_.amount is not None else refundable
        if amount <= ZERO:
            raise ValidationError(f"Refund amount must be positive, got {amount}", code="INVALID_AMOUNT")
        if amount > refundable:
            raise ConflictError(
                f"Refund of {amount} exceeds refundable {refundable} on payment {payment.id}",
                code="REFUND_EXCEEDS_CAPTURED",
                details={"payment_id": payment.id, "refundable": str(refundable)},
            )
        return StepResponse.of(
            RefundPlan(payment=payment, amount=amount, reason=input_.reason, note=input_.note)
        )

    async def _refund_with_provider(self, plan: RefundPlan, ctx: WorkflowContext) -> StepResponse[RefundPlan]:
        payment = plan.payment
        result = ensure_provider_success(
            await self._gateway.refund(payment, payment.money(plan.amount), plan.reason, plan.note),
            "refund",
            payment,
        )
        plan.provider_result = result
        return StepResponse.of(plan)

    async def _create_refund(self, plan: RefundPlan, ctx: WorkflowContext) -> StepResponse[Refund]:
        payment = plan.payment
        refund = Refund(
            payment_id=payment.id,
            order_id=payment.order_id,
            amount=plan.amount,
            currency_code=payment.currency_code,
            reason=plan.reason,
            note=plan.note,
            data=dict(plan.provider_result.provider_data) if plan.provider_result else {},
        )
        refund.succeed(plan.provider_result.provider_reference if plan.provider_result else None)
        await self._refunds.save(refund)
        return StepResponse.of(refund, compensation_data=refund.id)

    async def _delete_refund(self, plan: RefundPlan, refund: Refund, refund_id: str, ctx: WorkflowContext) -> None:
        await self._refunds.delete(refund_id)
        logger.warning(
            f"Refund record {refund_id} removed for payment {plan.payment.id}; "
            f"provider refund {refund.provider_refund_id} is not reversible"
        )

    async def _update_payment(self, plan: RefundPlan, ctx: WorkflowContext) -> StepResponse[Payment]:
        payment = await self._payments.find_by_id(plan.payment.id) or plan.payment
        previous = _PreviousRefundState(status=payment.status, amount_refunded=payment.amount_refunded)
        payment.record_refund(plan.amount)
        await self._payments.save(payment)
        plan.payment = payment
        return StepResponse.of(payment, compensation_data=previous)

    async def _restore_payment(
        self, plan: RefundPlan, payment: Payment, previous: _PreviousRefundState, ctx: WorkflowContext
    ) -> None:
        current = await self._payments.find_by_id(payment.id)
        if current is None:
            return
        current.status = previous.status
        current.amount_refunded = previous.amount_refunded
        await self._payments.save(current)
        logger.info(f"Restored payment {payment.id} to {previous.status.value}")

    async def _emit(self, request: tuple, ctx: WorkflowContext) -> None:
        plan, refund = request
        await self._event_bus.publish(
            PaymentRefundedEvent(
                payment_id=plan.payment.id,
                refund_id=refund.id,
                order_id=plan.payment.order_id,
                amount=refund.amount,
                currency_code=refund.currency_code,
                reason=refund.reason.value,
                is_full_refund=plan.payment.status == PaymentStatus.REFUNDED,
                execution_id=ctx.execution_id,
                correlation_id=ctx.correlation_id,
            )
        )
