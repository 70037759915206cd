"""
Process-return-refund workflow.

Refunds a received return against one of the order's captured payments.
The payment refund runs inline, so if marking the return or the order
fails afterwards, the refund record and the payment are restored too.
"""
from dataclasses import dataclass
import logging
from typing import Optional

from core.domain.entities.order import Order
from core.domain.entities.payment import REFUNDABLE_STATUSES, Payment
from core.domain.entities.returns import Return
from core.domain.enums import PaymentStatus, RefundReason
from core.domain.event_bus import EventBus
from core.domain.events import ReturnRefundedEvent
from core.domain.exceptions import ConflictError, NotFoundError
from core.domain.repositories import OrderRepository, PaymentRepository, ReturnRepository
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, order_lock_key, return_lock_key
from ..payment.refund_payment import RefundPaymentInput, RefundPaymentWorkflow

logger = logging.getLogger(__name__)


@dataclass
class ProcessReturnRefundInput:
    return_id: str
    processed_by: Optional[str] = None


RETURN = ContextKey[Return]("return")


class ProcessReturnRefundWorkflow(Workflow[ProcessReturnRefundInput, Return]):
    name = WorkflowNames.PROCESS_RETURN_REFUND
    input_type = ProcessReturnRefundInput
    output_type = Return

    def __init__(
        self,
        returns: ReturnRepository,
        orders: OrderRepository,
        payments: PaymentRepository,
        refund_payment: RefundPaymentWorkflow,
        event_bus: EventBus,
    ):
        self._returns = returns
        self._orders = orders
        self._payments = payments
        self._refund_payment = refund_payment
        self._event_bus = event_bus

        self.get_return = create_step("get-return", self._get_return)
        self.validate_return = create_step("validate-return", self._validate_return)
        self.find_payment = create_step("find-refundable-payment", self._find_payment)
        self.mark_refunded = create_step("mark-return-refunded", self._mark_refunded, self._revert_return)
        self.update_order = create_step(
            "update-order-payment-status", self._update_order, self._restore_order
        )
        self.emit_event = create_step("emit-return-refunded", self._emit)

    def lock_key_for(self, input_: ProcessReturnRefundInput) -> str:
        return return_lock_key(input_.return_id)

    async def execute(self, input_: ProcessReturnRefundInput, ctx: WorkflowContext) -> Return:
        return_ = (await self.get_return.invoke(input_.return_id, ctx)).data
        await ctx.lock(order_lock_key(return_.order_id))
        await self.validate_return.invoke(return_, ctx)
        payment = (await self.find_payment.invoke(return_, ctx)).data

        note = f"return {return_.id}"
        if input_.processed_by:
            note = f"{note} processed by {input_.processed_by}"
        refund = await self._refund_payment.execute(
            RefundPaymentInput(
                payment_id=payment.id,
                amount=return_.refund_amount,
                reason=RefundReason.RETURN,
                note=note,
            ),
            ctx,
        )

        return_ = (await self.mark_refunded.invoke((return_, refund.id), ctx)).data
        await self.update_order.invoke(return_.order_id, ctx)
        await self.emit_event.invoke(return_, ctx)
        return return_

    async def _get_return(self, return_id: str, ctx: WorkflowContext) -> StepResponse[Return]:
        return_ = await self._returns.find_by_id(return_id)
        if return_ is None:
            raise NotFoundError(
                f"Return not found: {return_id}", code="RETURN_NOT_FOUND", details={"return_id": return_id}
            )
        ctx.set(RETURN, return_)
        return StepResponse.of(return_)

    async def _validate_return(self, return_: Return, ctx: WorkflowContext) -> None:
        if not return_.can_process_refund:
            raise ConflictError(
                f"Return {return_.id} cannot be refunded in status {return_.status.value} "
                f"with amount {return_.refund_amount}",
                code="RETURN_NOT_REFUNDABLE",
                details={"return_id": return_.id, "status": return_.status.value},
            )

    async def _find_payment(self, return_: Return, ctx: WorkflowContext) -> StepResponse[Payment]:
        for payment in await self._payments.find_by_order_id(return_.order_id):
            if payment.status in REFUNDABLE_STATUSES and payment.refundable_amount >= return_.refund_amount:
                return StepResponse.of(payment)
        raise ConflictError(
            f"No captured payment on order {return_.order_id} covers {return_.refund_amount}",
            code="NO_REFUNDABLE_PAYMENT",
            details={"order_id": return_.order_id, "return_id": return_.id},
        )

    async def _mark_refunded(self, request: tuple, ctx: WorkflowContext) -> StepResponse[Return]:
        return_, refund_id = request
        return_.mark_refunded(refund_id)
        await self._returns.save(return_)
        return StepResponse.of(return_)

    async def _revert_return(self, request: tuple, return_: Return, _data: object, ctx: WorkflowContext) -> None:
        current = await self._returns.find_by_id(return_.id)
        if current is None:
            return
        current.revert_refund()
        await self._returns.save(current)

    async def _update_order(self, order_id: str, ctx: WorkflowContext) -> StepResponse[Optional[Order]]:
        order = await self._orders.find_by_id(order_id)
        if order is None:
            logger.warning(f"Order {order_id} not found; payment status left unchanged")
            return StepResponse.of(None)

        payments = await self._payments.find_by_order_id(order_id)
        previous = order.payment_status
        captured = [p for p in payments if p.is_captured]
        if captured and all(p.status == PaymentStatus.REFUNDED for p in captured):
            order.payment_status = PaymentStatus.REFUNDED
        else:
            order.payment_status = PaymentStatus.PARTIALLY_REFUNDED
        await self._orders.save(order)
        return StepResponse.of(order, compensation_data=previous)

    async def _restore_order(
        self, order_id: str, order: Optional[Order], previous: Optional[PaymentStatus], ctx: WorkflowContext
    ) -> None:
        if order is None or previous is None:
            return
        current = await self._orders.find_by_id(order_id)
        if current is None:
            return
        current.payment_status = previous
        await self._orders.save(current)

    async def _emit(self, return_: Return, ctx: WorkflowContext) -> None:
        await self._event_bus.publish(
            ReturnRefundedEvent(
                return_id=return_.id,
                order_id=return_.order_id,
                refund_id=return_.refund_id or "",
                amount=return_.refund_amount,
                currency_code=return_.currency_code,
                execution_id=ctx.execution_id,
                correlation_id=ctx.correlation_id,
            )
        )
