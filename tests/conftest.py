"""Shared fixtures: in-memory collaborators wired the way the API wires them."""

from decimal import Decimal

import pytest

from core.application.workflows import WorkflowDependencies, register_default_workflows
from core.domain.entities import (
    Cart,
    InventoryItem,
    InventoryLevel,
    InventoryReservation,
    Order,
    OrderLineItem,
    Payment,
    ProductVariant,
)
from core.domain.enums import PaymentStatus
from core.domain.event_bus import EventBus
from core.domain.events.base import DomainEvent
from core.domain.exceptions import InfrastructureError
from core.infrastructure.adapters.payments import SimulatedPaymentGateway
from core.infrastructure.adapters.persistence import (
    InMemoryCartRepository,
    InMemoryInventoryRepository,
    InMemoryOrderRepository,
    InMemoryPaymentRepository,
    InMemoryProductVariantRepository,
    InMemoryRefundRepository,
    InMemoryReturnRepository,
)
from core.infrastructure.event_bus import InMemoryDomainEventBus
from core.settings import WorkflowSettings
from orchestration import InMemoryEventBus, InMemoryLockManager, WorkflowEngine


@pytest.fixture
def variant_x() -> ProductVariant:
    return ProductVariant(
        id="variant_x",
        title="Medium",
        product_title="T-Shirt",
        sku="TSHIRT-M",
        prices={"USD": Decimal("10.00"), "EUR": Decimal("9.50")},
    )


@pytest.fixture
def managed_variant() -> ProductVariant:
    return ProductVariant(
        id="variant_managed",
        title="Large",
        product_title="Hoodie",
        sku="HOODIE-L",
        prices={"USD": Decimal("45.00")},
        manage_inventory=True,
        inventory_item_id="iitem_hoodie",
        location_id="loc_main",
    )


@pytest.fixture
def inventory_item() -> InventoryItem:
    return InventoryItem(sku="HOODIE-L", id="iitem_hoodie", title="Hoodie L")


@pytest.fixture
def inventory_level() -> InventoryLevel:
    return InventoryLevel(
        inventory_item_id="iitem_hoodie",
        location_id="loc_main",
        stocked_quantity=10,
        reserved_quantity=2,
        id="ilev_hoodie_main",
    )


@pytest.fixture
def cart() -> Cart:
    return Cart(currency_code="USD", id="cart_1", email="buyer@example.com")


@pytest.fixture
def order() -> Order:
    return Order(
        currency_code="USD",
        id="order_1",
        display_id=1001,
        items=[
            OrderLineItem(variant_id="variant_managed", title="Hoodie - Large", quantity=2, unit_price=Decimal("45.00")),
        ],
        total=Decimal("90.00"),
        payment_status=PaymentStatus.AUTHORIZED,
    )


@pytest.fixture
def authorized_payment() -> Payment:
    payment = Payment(
        amount=Decimal("50.00"),
        currency_code="USD",
        provider_id="manual",
        id="pay_authorized",
        order_id="order_1",
    )
    payment.authorize(external_id="manual_auth_1")
    return payment


@pytest.fixture
def captured_payment() -> Payment:
    payment = Payment(
        amount=Decimal("40.00"),
        currency_code="USD",
        provider_id="stripe",
        id="pay_captured",
        order_id="order_1",
    )
    payment.authorize(external_id="pi_123")
    payment.capture()
    return payment


@pytest.fixture
def reservation() -> InventoryReservation:
    return InventoryReservation(
        inventory_level_id="ilev_hoodie_main",
        quantity=2,
        order_id="order_1",
        id="resitem_1",
    )


@pytest.fixture
def carts(cart) -> InMemoryCartRepository:
    return InMemoryCartRepository([cart])


@pytest.fixture
def variants(variant_x, managed_variant) -> InMemoryProductVariantRepository:
    return InMemoryProductVariantRepository([variant_x, managed_variant])


@pytest.fixture
def inventory(inventory_item, inventory_level, reservation) -> InMemoryInventoryRepository:
    return InMemoryInventoryRepository(
        items=[inventory_item], levels=[inventory_level], reservations=[reservation]
    )


@pytest.fixture
def orders(order) -> InMemoryOrderRepository:
    return InMemoryOrderRepository([order])


@pytest.fixture
def payments(authorized_payment, captured_payment) -> InMemoryPaymentRepository:
    return InMemoryPaymentRepository([authorized_payment, captured_payment])


@pytest.fixture
def refunds() -> InMemoryRefundRepository:
    return InMemoryRefundRepository()


@pytest.fixture
def returns() -> InMemoryReturnRepository:
    return InMemoryReturnRepository()


@pytest.fixture
def gateway() -> SimulatedPaymentGateway:
    return SimulatedPaymentGateway()


@pytest.fixture
def domain_events() -> InMemoryDomainEventBus:
    return InMemoryDomainEventBus()


@pytest.fixture
def deps(carts, variants, orders, payments, refunds, inventory, returns, gateway, domain_events) -> WorkflowDependencies:
    return WorkflowDependencies(
        carts=carts,
        variants=variants,
        orders=orders,
        payments=payments,
        refunds=refunds,
        inventory=inventory,
        returns=returns,
        payment_gateway=gateway,
        event_bus=domain_events,
    )


@pytest.fixture
def lifecycle_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def engine(lifecycle_bus) -> WorkflowEngine:
    return WorkflowEngine(
        lock_manager=InMemoryLockManager(),
        event_bus=lifecycle_bus,
        settings=WorkflowSettings(default_timeout_seconds=5, lock_wait_seconds=1),
    )


@pytest.fixture
def app_engine(engine, deps) -> WorkflowEngine:
    """Engine with every business workflow registered."""
    register_default_workflows(engine, deps)
    return engine


class FailingEventBus(EventBus):
    """Domain event bus whose publish fails, to drive compensation paths."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.published: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        if self.fail_on is None or event.event_type == self.fail_on:
            raise InfrastructureError(f"event store unavailable for {event.event_type}")
        self.published.append(event)

    async def publish_all(self, events: list[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)


@pytest.fixture
def failing_events() -> FailingEventBus:
    return FailingEventBus()
