"""Tests for HTTP error mapping."""

import json

import pytest

from api.errors import domain_error_handler, failure_response, status_code_for
from core.domain.exceptions import ConflictError, ErrorKind, NotFoundError
from orchestration import WorkflowResult
from orchestration.errors import WorkflowTimeoutError


@pytest.mark.parametrize(
    "kind, status_code",
    [
        (ErrorKind.VALIDATION, 400),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.CONFLICT, 409),
        (ErrorKind.TIMEOUT, 504),
        (ErrorKind.INFRASTRUCTURE, 500),
        (ErrorKind.CONFIGURATION, 500),
    ],
)
def test_every_kind_has_a_status(kind, status_code):
    assert status_code_for(kind) == status_code


def test_failure_response_renders_error_body():
    failure = WorkflowResult.failure(
        ConflictError("Cart is completed", code="CART_COMPLETED", details={"cart_id": "cart_1"})
    )

    response = failure_response(failure)

    assert response.status_code == 409
    assert json.loads(response.body) == {
        "success": False,
        "error": {
            "kind": "conflict",
            "code": "CART_COMPLETED",
            "message": "Cart is completed",
            "details": {"cart_id": "cart_1"},
        },
    }


def test_timeout_failure_maps_to_gateway_timeout():
    response = failure_response(WorkflowResult.failure(WorkflowTimeoutError("too slow")))

    assert response.status_code == 504


def test_plain_exception_failure_is_server_error():
    response = failure_response(WorkflowResult.failure(RuntimeError("boom")))

    body = json.loads(response.body)
    assert response.status_code == 500
    assert body["error"]["kind"] == "infrastructure"
    assert body["error"]["message"] == "boom"


@pytest.mark.asyncio
async def test_domain_error_handler():
    class _Url:
        path = "/workflows/x"

    class _Request:
        method = "GET"
        url = _Url()

    response = await domain_error_handler(_Request(), NotFoundError("Order not found", code="ORDER_NOT_FOUND"))

    assert response.status_code == 404
    assert json.loads(response.body)["error"]["code"] == "ORDER_NOT_FOUND"
