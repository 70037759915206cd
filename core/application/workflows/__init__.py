"""
Business workflows and their registration with the engine.

Each workflow is built from the repositories and gateways in
WorkflowDependencies; ``register_default_workflows`` puts one instance of
each into a WorkflowEngine under its ``<aggregate>.<action>`` name.
"""
from dataclasses import dataclass
from typing import List

from core.application.interfaces import IPaymentProviderGateway
from core.domain.event_bus import EventBus
from core.domain.repositories import (
    CartRepository,
    InventoryRepository,
    OrderRepository,
    PaymentRepository,
    ProductVariantRepository,
    RefundRepository,
    ReturnRepository,
)
from orchestration import Workflow, WorkflowEngine

from .cart import AddToCartWorkflow, RemoveLineItemsWorkflow, UpdateLineItemWorkflow
from .constants import WorkflowNames
from .inventory import AdjustInventoryWorkflow
from .order import CancelOrderWorkflow
from .payment import AuthorizePaymentWorkflow, CapturePaymentWorkflow, RefundPaymentWorkflow
from .returns import ProcessReturnRefundWorkflow


@dataclass
class WorkflowDependencies:
    carts: CartRepository
    variants: ProductVariantRepository
    orders: OrderRepository
    payments: PaymentRepository
    refunds: RefundRepository
    inventory: InventoryRepository
    returns: ReturnRepository
    payment_gateway: IPaymentProviderGateway
    event_bus: EventBus


def build_workflows(deps: WorkflowDependencies) -> List[Workflow]:
    refund_payment = RefundPaymentWorkflow(deps.payments, deps.refunds, deps.payment_gateway, deps.event_bus)
    return [
        AddToCartWorkflow(deps.carts, deps.variants, deps.inventory),
        UpdateLineItemWorkflow(deps.carts, deps.variants, deps.inventory),
        RemoveLineItemsWorkflow(deps.carts),
        AuthorizePaymentWorkflow(deps.payments, deps.payment_gateway, deps.event_bus),
        CapturePaymentWorkflow(deps.payments, deps.payment_gateway, deps.event_bus),
        refund_payment,
        CancelOrderWorkflow(
            deps.orders, deps.payments, deps.inventory, deps.payment_gateway, refund_payment, deps.event_bus
        ),
        AdjustInventoryWorkflow(deps.inventory, deps.event_bus),
        ProcessReturnRefundWorkflow(deps.returns, deps.orders, deps.payments, refund_payment, deps.event_bus),
    ]


def register_default_workflows(engine: WorkflowEngine, deps: WorkflowDependencies) -> List[str]:
    """Register every business workflow; returns the registered names."""
    names = []
    for workflow in build_workflows(deps):
        engine.register(workflow)
        names.append(workflow.name)
    return names


__all__ = [
    "WorkflowDependencies",
    "WorkflowNames",
    "build_workflows",
    "register_default_workflows",
]
