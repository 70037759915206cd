"""Tests for wiring the business workflows into an engine."""

import pytest

from core.application.workflows import build_workflows, register_default_workflows
from core.application.workflows.constants import WorkflowNames
from orchestration import InMemoryLockManager, WorkflowEngine
from orchestration.errors import WorkflowConfigurationError

ALL_NAMES = {
    WorkflowNames.ADD_TO_CART,
    WorkflowNames.UPDATE_LINE_ITEM,
    WorkflowNames.REMOVE_LINE_ITEM,
    WorkflowNames.AUTHORIZE_PAYMENT,
    WorkflowNames.CAPTURE_PAYMENT,
    WorkflowNames.REFUND_PAYMENT,
    WorkflowNames.CANCEL_ORDER,
    WorkflowNames.ADJUST_INVENTORY,
    WorkflowNames.PROCESS_RETURN_REFUND,
}


def test_every_workflow_is_registered(deps):
    engine = WorkflowEngine(lock_manager=InMemoryLockManager())

    names = register_default_workflows(engine, deps)

    assert set(names) == ALL_NAMES
    assert {info.name for info in engine.list_workflows()} == ALL_NAMES


def test_registering_twice_is_rejected(deps):
    engine = WorkflowEngine(lock_manager=InMemoryLockManager())
    register_default_workflows(engine, deps)

    with pytest.raises(WorkflowConfigurationError):
        register_default_workflows(engine, deps)


def test_cancel_and_return_share_the_refund_workflow(deps):
    workflows = {w.name: w for w in build_workflows(deps)}

    refund = workflows[WorkflowNames.REFUND_PAYMENT]
    assert workflows[WorkflowNames.CANCEL_ORDER]._refund_payment is refund
    assert workflows[WorkflowNames.PROCESS_RETURN_REFUND]._refund_payment is refund
