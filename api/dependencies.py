"""
FastAPI Dependencies.

Builds the workflow engine and its collaborators once per process.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables ONCE before any settings objects are created
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

from core.application.workflows import WorkflowDependencies, register_default_workflows
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
from core.settings import get_app_settings
from orchestration import WorkflowEngine, create_default_engine

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON INSTANCES
# =============================================================================

_workflow_dependencies: Optional[WorkflowDependencies] = None
_workflow_engine: Optional[WorkflowEngine] = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_workflow_dependencies() -> WorkflowDependencies:
    global _workflow_dependencies
    if _workflow_dependencies is None:
        _workflow_dependencies = WorkflowDependencies(
            carts=InMemoryCartRepository(),
            variants=InMemoryProductVariantRepository(),
            orders=InMemoryOrderRepository(),
            payments=InMemoryPaymentRepository(),
            refunds=InMemoryRefundRepository(),
            inventory=InMemoryInventoryRepository(),
            returns=InMemoryReturnRepository(),
            payment_gateway=SimulatedPaymentGateway(),
            event_bus=InMemoryDomainEventBus(),
        )
        logger.info("Created in-memory workflow dependencies")
    return _workflow_dependencies


def get_workflow_engine() -> WorkflowEngine:
    global _workflow_engine
    if _workflow_engine is None:
        settings = get_app_settings()
        engine = create_default_engine(settings)
        names = register_default_workflows(engine, get_workflow_dependencies())
        logger.info(
            f"Created WorkflowEngine ({settings.workflow.lock_backend} locks) "
            f"with {len(names)} workflows"
        )
        _workflow_engine = engine
    return _workflow_engine


# =============================================================================
# RESET (for testing)
# =============================================================================

def reset_dependencies():
    global _workflow_dependencies, _workflow_engine

    _workflow_dependencies = None
    _workflow_engine = None

    logger.info("Dependencies reset")
