"""
Authorize-payment workflow.

Holds funds with the payment provider. If anything after the provider call
fails, the authorization is voided and the payment canceled.
"""
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Optional

from core.application.interfaces import IPaymentProviderGateway, ProviderResult
from core.domain.entities.payment import Payment
from core.domain.enums import PaymentStatus
from core.domain.event_bus import EventBus
from core.domain.events import PaymentAuthorizedEvent
from core.domain.exceptions import ConflictError
from core.domain.repositories import PaymentRepository
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, payment_lock_key
from .steps import PAYMENT, ensure_provider_success, get_payment_step, resolve_amount

logger = logging.getLogger(__name__)

AUTHORIZATION_VOIDED = ContextKey[str]("authorization_voided")


@dataclass
class AuthorizePaymentInput:
    payment_id: str
    amount: Optional[Decimal] = None


@dataclass
class _Authorization:
    payment: Payment
    amount: Optional[Decimal]


class AuthorizePaymentWorkflow(Workflow[AuthorizePaymentInput, Payment]):
    name = WorkflowNames.AUTHORIZE_PAYMENT
    input_type = AuthorizePaymentInput
    output_type = Payment

    def __init__(self, payments: PaymentRepository, gateway: IPaymentProviderGateway, event_bus: EventBus):
        self._payments = payments
        self._gateway = gateway
        self._event_bus = event_bus

        self.get_payment = get_payment_step(payments)
        self.validate_payment = create_step("validate-payment-pending", self._validate)
        self.authorize_with_provider = create_step(
            "authorize-with-provider", self._authorize, self._void_authorization
        )
        self.mark_authorized = create_step("mark-payment-authorized", self._mark_authorized)
        self.emit_event = create_step("emit-payment-authorized", self._emit)

    def lock_key_for(self, input_: AuthorizePaymentInput) -> str:
        return payment_lock_key(input_.payment_id)

    async def execute(self, input_: AuthorizePaymentInput, ctx: WorkflowContext) -> Payment:
        payment = (await self.get_payment.invoke(input_.payment_id, ctx)).data
        authorization = (await self.validate_payment.invoke(
            _Authorization(payment, input_.amount), ctx
        )).data
        result = (await self.authorize_with_provider.invoke(authorization, ctx)).data
        payment = (await self.mark_authorized.invoke(result, ctx)).data
        await self.emit_event.invoke(payment, ctx)
        return payment

    async def _validate(self, request: _Authorization, ctx: WorkflowContext) -> StepResponse[_Authorization]:
        payment = request.payment
        if payment.status != PaymentStatus.PENDING:
            raise ConflictError(
                f"Payment {payment.id} must be pending to authorize, status is {payment.status.value}",
                code="INVALID_PAYMENT_STATE",
                details={"payment_id": payment.id, "status": payment.status.value},
            )
        amount = resolve_amount(payment, request.amount, payment.amount)
        return StepResponse.of(_Authorization(payment, amount))

    async def _authorize(self, request: _Authorization, ctx: WorkflowContext) -> StepResponse[ProviderResult]:
        payment = request.payment
        result = ensure_provider_success(
            await self._gateway.authorize(payment, payment.money(request.amount)), "authorization", payment
        )
        if result.requires_more:
            raise ConflictError(
                f"Provider requires further customer action for payment {payment.id}",
                code="PAYMENT_REQUIRES_ACTION",
                details={"payment_id": payment.id},
            )
        return StepResponse.of(result, compensation_data=payment.id)

    async def _void_authorization(
        self, request: _Authorization, result: ProviderResult, payment_id: str, ctx: WorkflowContext
    ) -> None:
        payment = await self._payments.find_by_id(payment_id)
        if payment is None:
            return
        if ctx.get(AUTHORIZATION_VOIDED) != payment.id:
            voided = await self._gateway.void(payment)
            if voided.success:
                ctx.set(AUTHORIZATION_VOIDED, payment.id)
            else:
                logger.warning(f"Provider void failed for payment {payment.id}: {voided.error}")
        if payment.status == PaymentStatus.AUTHORIZED:
            payment.cancel()
            await self._payments.save(payment)
            logger.info(f"Canceled authorization of payment {payment.id}")

    async def _mark_authorized(self, result: ProviderResult, ctx: WorkflowContext) -> StepResponse[Payment]:
        payment = ctx.require(PAYMENT)
        payment.authorize(external_id=result.provider_reference, data=result.provider_data)
        await self._payments.save(payment)
        return StepResponse.of(payment)

    async def _emit(self, payment: Payment, ctx: WorkflowContext) -> None:
        await self._event_bus.publish(
            PaymentAuthorizedEvent(
                payment_id=payment.id,
                order_id=payment.order_id,
                amount=payment.amount,
                currency_code=payment.currency_code,
                provider_id=payment.provider_id,
                execution_id=ctx.execution_id,
                correlation_id=ctx.correlation_id,
            )
        )
