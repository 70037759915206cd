"""
Cancel-order workflow.

Cancels an unfulfilled order: uncaptured payments are voided and canceled, captured
payments refunded and inventory reservations released, concurrently. The
order itself is marked canceled only once all three succeeded; if any of
them fails, whatever the others already did is compensated.
"""
from dataclasses import dataclass, field
from decimal import Decimal
import logging
from typing import List, Optional

from core.application.interfaces import IPaymentProviderGateway
from core.domain.entities.inventory import InventoryReservation
from core.domain.entities.order import Order
from core.domain.entities.payment import REFUNDABLE_STATUSES, Payment, Refund
from core.domain.enums import OrderStatus, PaymentStatus, RefundReason
from core.domain.event_bus import EventBus
from core.domain.events import OrderCanceledEvent
from core.domain.exceptions import NotFoundError
from core.domain.repositories import InventoryRepository, OrderRepository, PaymentRepository
from core.domain.value_objects import ZERO, to_amount
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step, parallel

from ..constants import WorkflowNames, order_lock_key, payment_lock_key
from ..payment.refund_payment import RefundPaymentInput, RefundPaymentWorkflow
from ..payment.steps import ensure_provider_success

logger = logging.getLogger(__name__)


@dataclass
class CancelOrderInput:
    order_id: str
    reason: Optional[str] = None
    canceled_by: Optional[str] = None


@dataclass
class CancelOrderResult:
    order_id: str
    status: OrderStatus
    canceled_payment_ids: List[str] = field(default_factory=list)
    refund_ids: List[str] = field(default_factory=list)
    released_reservation_ids: List[str] = field(default_factory=list)
    refunded_amount: Decimal = ZERO


@dataclass
class _ReleasedReservation:
    reservation_id: str
    inventory_level_id: str
    quantity: int


ORDER = ContextKey[Order]("order")


class CancelOrderWorkflow(Workflow[CancelOrderInput, CancelOrderResult]):
    name = WorkflowNames.CANCEL_ORDER
    input_type = CancelOrderInput
    output_type = CancelOrderResult

    def __init__(
        self,
        orders: OrderRepository,
        payments: PaymentRepository,
        inventory: InventoryRepository,
        gateway: IPaymentProviderGateway,
        refund_payment: RefundPaymentWorkflow,
        event_bus: EventBus,
    ):
        self._orders = orders
        self._payments = payments
        self._inventory = inventory
        self._gateway = gateway
        self._refund_payment = refund_payment
        self._event_bus = event_bus

        self.get_order = create_step("get-order", self._get_order)
        self.validate_order = create_step("cancel-validate-order", self._validate_order)
        self.get_payments = create_step("get-order-payments", self._get_payments)
        self.cancel_payment = create_step(
            "cancel-uncaptured-payment", self._cancel_payment, self._restore_payment
        )
        self.release_reservations = create_step(
            "release-reservations", self._release_reservations, self._restore_reservations
        )
        self.cancel_order = create_step("cancel-order", self._cancel_order, self._restore_order)
        self.emit_event = create_step("emit-order-canceled", self._emit)

    def lock_key_for(self, input_: CancelOrderInput) -> str:
        return order_lock_key(input_.order_id)

    async def execute(self, input_: CancelOrderInput, ctx: WorkflowContext) -> CancelOrderResult:
        order = (await self.get_order.invoke(input_.order_id, ctx)).data
        await self.validate_order.invoke(order, ctx)
        payments = (await self.get_payments.invoke(order.id, ctx)).data

        uncaptured = [p for p in payments if p.status == PaymentStatus.AUTHORIZED and not p.is_captured]
        captured = [p for p in payments if p.status in REFUNDABLE_STATUSES and p.refundable_amount > ZERO]

        canceled_ids, refunds, released = await parallel(
            self._cancel_uncaptured(uncaptured, ctx),
            self._refund_captured(captured, ctx),
            self.release_reservations.invoke(order.id, ctx),
        )

        order = (await self.cancel_order.invoke(order, ctx)).data
        result = CancelOrderResult(
            order_id=order.id,
            status=order.status,
            canceled_payment_ids=canceled_ids,
            refund_ids=[r.id for r in refunds],
            released_reservation_ids=[r.reservation_id for r in released.data],
            refunded_amount=to_amount(sum((r.amount for r in refunds), ZERO)),
        )
        await self.emit_event.invoke((input_, result), ctx)
        return result

    async def _cancel_uncaptured(self, payments: List[Payment], ctx: WorkflowContext) -> List[str]:
        canceled = []
        for payment in payments:
            await self.cancel_payment.invoke(payment, ctx)
            canceled.append(payment.id)
        return canceled

    async def _refund_captured(self, payments: List[Payment], ctx: WorkflowContext) -> List[Refund]:
        refunds = []
        for payment in payments:
            refund = await self._refund_payment.execute(
                RefundPaymentInput(payment_id=payment.id, reason=RefundReason.CANCEL, note="order canceled"),
                ctx,
            )
            refunds.append(refund)
        return refunds

    async def _get_order(self, order_id: str, ctx: WorkflowContext) -> StepResponse[Order]:
        order = await self._orders.find_by_id(order_id)
        if order is None:
            raise NotFoundError(
                f"Order not found: {order_id}", code="ORDER_NOT_FOUND", details={"order_id": order_id}
            )
        ctx.set(ORDER, order)
        return StepResponse.of(order)

    async def _validate_order(self, order: Order, ctx: WorkflowContext) -> None:
        order.ensure_cancelable()

    async def _get_payments(self, order_id: str, ctx: WorkflowContext) -> StepResponse[List[Payment]]:
        found = await self._payments.find_by_order_id(order_id)
        await ctx.lock(*(payment_lock_key(p.id) for p in found))
        # re-read under the payment locks so in-flight captures and refunds are seen
        return StepResponse.of(await self._payments.find_by_order_id(order_id))

    async def _cancel_payment(self, payment: Payment, ctx: WorkflowContext) -> StepResponse[Payment]:
        previous_status = payment.status
        ensure_provider_success(await self._gateway.void(payment), "void", payment)
        payment.cancel()
        await self._payments.save(payment)
        return StepResponse.of(payment, compensation_data=previous_status)

    async def _restore_payment(
        self, _payment: Payment, payment: Payment, previous_status: PaymentStatus, ctx: WorkflowContext
    ) -> None:
        current = await self._payments.find_by_id(payment.id)
        if current is None or current.status != PaymentStatus.CANCELED:
            return
        current.status = previous_status
        current.canceled_at = None
        await self._payments.save(current)
        logger.warning(
            f"Restored payment {payment.id} to {previous_status.value}; its provider "
            f"authorization {payment.external_id} was voided and has to be re-created"
        )

    async def _release_reservations(
        self, order_id: str, ctx: WorkflowContext
    ) -> StepResponse[List[_ReleasedReservation]]:
        released: List[_ReleasedReservation] = []
        for reservation in await self._inventory.find_reservations_by_order(order_id):
            level = await self._inventory.find_level_by_id(reservation.inventory_level_id)
            if level is not None:
                level.release(reservation.quantity)
                await self._inventory.save_level(level)
            reservation.release()
            await self._inventory.save_reservation(reservation)
            released.append(
                _ReleasedReservation(reservation.id, reservation.inventory_level_id, reservation.quantity)
            )
        return StepResponse.of(released, compensation_data=released)

    async def _restore_reservations(
        self, order_id: str, _output: object, released: List[_ReleasedReservation], ctx: WorkflowContext
    ) -> None:
        for entry in released:
            reservation: Optional[InventoryReservation] = await self._inventory.find_reservation(
                entry.reservation_id
            )
            if reservation is None or reservation.is_active:
                continue
            reservation.reactivate()
            await self._inventory.save_reservation(reservation)
            level = await self._inventory.find_level_by_id(entry.inventory_level_id)
            if level is not None:
                level.restore_reserved(entry.quantity)
                await self._inventory.save_level(level)
        if released:
            logger.info(f"Re-reserved {len(released)} reservation(s) for order {order_id}")

    async def _cancel_order(self, order: Order, ctx: WorkflowContext) -> StepResponse[Order]:
        previous_status = order.status
        order.cancel()
        await self._orders.save(order)
        return StepResponse.of(order, compensation_data=previous_status)

    async def _restore_order(
        self, _order: Order, order: Order, previous_status: OrderStatus, ctx: WorkflowContext
    ) -> None:
        current = await self._orders.find_by_id(order.id)
        if current is None:
            return
        current.restore_status(previous_status)
        await self._orders.save(current)

    async def _emit(self, request: tuple, ctx: WorkflowContext) -> None:
        input_, result = request
        await self._event_bus.publish(
            OrderCanceledEvent(
                order_id=result.order_id,
                reason=input_.reason,
                canceled_by=input_.canceled_by,
                refunded_amount=result.refunded_amount,
                canceled_payment_ids=list(result.canceled_payment_ids),
                refund_ids=list(result.refund_ids),
                execution_id=ctx.execution_id,
                correlation_id=ctx.correlation_id,
            )
        )
