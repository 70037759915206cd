"""Tests for the cancel-order workflow."""

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest

from core.application.workflows import register_default_workflows
from core.application.workflows.order import CancelOrderInput, CancelOrderResult, CancelOrderWorkflow
from core.application.workflows.payment import CapturePaymentInput
from core.application.workflows.payment import RefundPaymentWorkflow
from core.domain.entities import Fulfillment
from core.domain.entities import Payment
from core.domain.enums import OrderStatus, PaymentStatus
from core.infrastructure.adapters.payments import SimulatedPaymentGateway
from orchestration import ErrorKind, InMemoryLockManager, WorkflowContext, WorkflowEngine


async def cancel(engine, order_id="order_1", **kwargs):
    return await engine.execute(
        "order.cancel", CancelOrderInput(order_id, **kwargs), CancelOrderInput, CancelOrderResult
    )


@pytest.mark.asyncio
async def test_cancel_order_cancels_refunds_and_releases(
    app_engine, orders, payments, refunds, inventory, domain_events
):
    result = await cancel(app_engine, reason="customer request", canceled_by="agent_7")

    outcome = result.get_or_raise()
    assert outcome.status == OrderStatus.CANCELED
    assert outcome.canceled_payment_ids == ["pay_authorized"]
    assert len(outcome.refund_ids) == 1
    assert outcome.released_reservation_ids == ["resitem_1"]
    assert outcome.refunded_amount == Decimal("40.00")

    order = await orders.find_by_id("order_1")
    assert order.status == OrderStatus.CANCELED
    assert order.canceled_at is not None
    assert (await payments.find_by_id("pay_authorized")).status == PaymentStatus.CANCELED
    assert (await payments.find_by_id("pay_captured")).status == PaymentStatus.REFUNDED
    assert (await refunds.find_by_id(outcome.refund_ids[0])).reason.value == "cancel"
    assert (await inventory.find_level_by_id("ilev_hoodie_main")).reserved_quantity == 0
    assert not (await inventory.find_reservation("resitem_1")).is_active

    event = domain_events.events_of_type("OrderCanceledEvent")[0]
    assert event.aggregate_id == "order_1"
    assert event.reason == "customer request"
    assert event.canceled_by == "agent_7"
    assert event.refund_ids == outcome.refund_ids


@pytest.mark.asyncio
async def test_refund_failure_restores_canceled_payments(app_engine, orders, payments, inventory, gateway):
    gateway.fail("refund", "provider unavailable")

    result = await cancel(app_engine)

    assert result.is_failure()
    assert result.kind == ErrorKind.INFRASTRUCTURE
    authorized = await payments.find_by_id("pay_authorized")
    assert authorized.status == PaymentStatus.AUTHORIZED
    assert authorized.canceled_at is None
    assert (await payments.find_by_id("pay_captured")).status == PaymentStatus.CAPTURED
    assert (await orders.find_by_id("order_1")).status == OrderStatus.PENDING
    assert (await inventory.find_reservation("resitem_1")).is_active
    assert (await inventory.find_level_by_id("ilev_hoodie_main")).reserved_quantity == 2


@pytest.mark.asyncio
async def test_failure_after_cancel_undoes_every_branch(
    orders, payments, refunds, inventory, gateway, failing_events
):
    failing_events.fail_on = "OrderCanceledEvent"
    refund_payment = RefundPaymentWorkflow(payments, refunds, gateway, failing_events)
    workflow = CancelOrderWorkflow(orders, payments, inventory, gateway, refund_payment, failing_events)

    result = await workflow.run(CancelOrderInput("order_1"), WorkflowContext())

    assert result.is_failure()
    assert (await orders.find_by_id("order_1")).status == OrderStatus.PENDING
    assert (await payments.find_by_id("pay_authorized")).status == PaymentStatus.AUTHORIZED
    captured = await payments.find_by_id("pay_captured")
    assert captured.status == PaymentStatus.CAPTURED
    assert captured.amount_refunded == Decimal("0.00")
    assert await refunds.find_by_payment_id("pay_captured") == []
    assert (await inventory.find_level_by_id("ilev_hoodie_main")).reserved_quantity == 2


@pytest.mark.asyncio
async def test_order_with_active_fulfillment_cannot_be_canceled(app_engine, orders, payments):
    order = await orders.find_by_id("order_1")
    order.fulfillments.append(Fulfillment())
    await orders.save(order)

    result = await cancel(app_engine)

    assert result.kind == ErrorKind.CONFLICT
    assert result.error.code == "ORDER_HAS_FULFILLMENTS"
    assert (await payments.find_by_id("pay_authorized")).status == PaymentStatus.AUTHORIZED


@pytest.mark.asyncio
async def test_canceled_order_cannot_be_canceled_again(app_engine):
    assert (await cancel(app_engine)).is_success()

    result = await cancel(app_engine)

    assert result.kind == ErrorKind.CONFLICT
    assert result.error.code == "ORDER_ALREADY_CANCELED"


@pytest.mark.asyncio
async def test_unknown_order_is_not_found(app_engine):
    result = await cancel(app_engine, "order_missing")

    assert result.kind == ErrorKind.NOT_FOUND
    assert result.error.code == "ORDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_cancel_order_records_nested_refund_steps(app_engine):
    await cancel(app_engine)

    record = (await app_engine.list_executions("order.cancel"))[0]
    assert record.lock_key == "order:order_1"
    assert "refund-with-provider" in record.steps
    assert record.steps[-1] == "emit-order-canceled"


class SlowCaptureGateway(SimulatedPaymentGateway):
    """Gateway whose capture takes a while, so another workflow can start meanwhile."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def capture(self, payment, amount):
        await asyncio.sleep(self.delay)
        return await super().capture(payment, amount)


@pytest.mark.asyncio
async def test_uncaptured_payment_authorization_is_voided(app_engine, gateway):
    await cancel(app_engine)

    assert ("void", "pay_authorized", None) in gateway.calls


@pytest.mark.asyncio
async def test_void_failure_keeps_payment_authorized(app_engine, orders, payments, gateway):
    gateway.fail("void", "authorization expired")

    result = await cancel(app_engine)

    assert result.kind == ErrorKind.INFRASTRUCTURE
    assert result.error.code == "PROVIDER_DECLINED"
    assert (await payments.find_by_id("pay_authorized")).status == PaymentStatus.AUTHORIZED
    assert (await payments.find_by_id("pay_captured")).status == PaymentStatus.CAPTURED
    assert (await orders.find_by_id("order_1")).status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_cancel_waits_for_in_flight_capture(deps, orders, payments, refunds):
    engine = WorkflowEngine(lock_manager=InMemoryLockManager())
    register_default_workflows(engine, replace(deps, payment_gateway=SlowCaptureGateway(0.2)))

    capture = asyncio.ensure_future(
        engine.execute("payment.capture", CapturePaymentInput("pay_authorized"), CapturePaymentInput, Payment)
    )
    await asyncio.sleep(0.05)
    cancel_result, capture_result = await asyncio.gather(cancel(engine), capture)

    assert capture_result.is_success()
    outcome = cancel_result.get_or_raise()
    assert outcome.canceled_payment_ids == []
    assert outcome.refunded_amount == Decimal("90.00")
    assert (await orders.find_by_id("order_1")).status == OrderStatus.CANCELED
    assert (await payments.find_by_id("pay_authorized")).status == PaymentStatus.REFUNDED
    assert len(await refunds.find_by_payment_id("pay_authorized")) == 1
