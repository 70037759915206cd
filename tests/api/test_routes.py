"""Tests for the health and workflow endpoints."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from api.dependencies import get_workflow_engine, reset_dependencies
from api.main import app
from core.application.workflows import register_default_workflows
from core.application.workflows.order import CancelOrderInput, CancelOrderResult
from core.settings import WorkflowSettings
from orchestration import InMemoryEventBus, RedisLockManager, WorkflowEngine


@pytest.fixture
def client(app_engine):
    reset_dependencies()
    app.dependency_overrides[get_workflow_engine] = lambda: app_engine
    yield TestClient(app)
    app.dependency_overrides.clear()
    reset_dependencies()


def run_failed_cancel(engine):
    return asyncio.run(
        engine.execute("order.cancel", CancelOrderInput("order_missing"), CancelOrderInput, CancelOrderResult)
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "storeflow"


def test_readiness_reports_engine(client):
    response = client.get("/health/ready")

    body = response.json()
    assert body["status"] == "ready"
    assert body["checks"]["workflows"] == 9
    assert body["checks"]["lock_manager"] == "InMemoryLockManager"
    assert body["checks"]["lock_backend"] == "ok"


def test_readiness_fails_when_redis_is_unreachable(deps):
    redis_client = AsyncMock()
    redis_client.ping.side_effect = RedisConnectionError("connection refused")
    engine = WorkflowEngine(
        lock_manager=RedisLockManager(redis_client),
        event_bus=InMemoryEventBus(),
        settings=WorkflowSettings(),
    )
    register_default_workflows(engine, deps)
    app.dependency_overrides[get_workflow_engine] = lambda: engine
    try:
        response = TestClient(app).get("/health/ready")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "not_ready"
    assert body["checks"]["lock_backend"] == "unavailable"


def test_list_workflows(client):
    response = client.get("/workflows")

    body = response.json()
    assert body["count"] == 9
    cancel = next(w for w in body["workflows"] if w["name"] == "order.cancel")
    assert cancel == {
        "name": "order.cancel",
        "input_type": "CancelOrderInput",
        "output_type": "CancelOrderResult",
    }


def test_executions_are_listed_and_fetched(client, app_engine):
    run_failed_cancel(app_engine)

    listing = client.get("/workflows/executions", params={"workflow_name": "order.cancel"}).json()
    assert listing["count"] == 1
    execution = listing["executions"][0]
    assert execution["status"] == "failed"
    assert execution["error_kind"] == "not_found"
    assert execution["error_code"] == "ORDER_NOT_FOUND"
    assert execution["lock_key"] == "order:order_missing"

    fetched = client.get(f"/workflows/executions/{execution['execution_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["execution_id"] == execution["execution_id"]


def test_unknown_execution_is_404(client):
    assert client.get("/workflows/executions/does-not-exist").status_code == 404


def test_execution_limit_is_validated(client):
    assert client.get("/workflows/executions", params={"limit": 0}).status_code == 422


def test_statistics(client, app_engine):
    run_failed_cancel(app_engine)
    run_failed_cancel(app_engine)

    stats = client.get("/workflows/order.cancel/statistics").json()

    assert stats["total"] == 2
    assert stats["failed"] == 2
    assert stats["succeeded"] == 0


def test_statistics_for_unknown_workflow_is_404(client):
    assert client.get("/workflows/nope/statistics").status_code == 404


def test_root(client):
    assert client.get("/").json()["health"] == "/health"
