"""
HTTP error mapping.

The only place where error kinds become HTTP status codes. Workflow
failures and escaped DomainErrors render the same JSON body.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from core.domain.exceptions import DomainError, ErrorKind
from orchestration import Failure
from orchestration.errors import describe_error

logger = logging.getLogger(__name__)


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.INFRASTRUCTURE: 500,
    ErrorKind.CONFIGURATION: 500,
}


def status_code_for(kind: ErrorKind) -> int:
    """HTTP status for an error kind."""
    return _STATUS_CODES[kind]


def failure_response(failure: Failure) -> JSONResponse:
    """Render a workflow Failure as a JSON error response."""
    return JSONResponse(
        status_code=status_code_for(failure.kind),
        content={"success": False, "error": describe_error(failure.error)},
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Handle DomainErrors raised outside a workflow."""
    logger.warning(f"{request.method} {request.url.path} failed ({exc.kind.value}): {exc}")
    return JSONResponse(
        status_code=status_code_for(exc.kind),
        content={"success": False, "error": describe_error(exc)},
    )
