"""Orchestration errors - engine failures and error classification."""

from core.domain.exceptions import (
    ConflictError,
    DomainError,
    ErrorKind,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)


class WorkflowTimeoutError(DomainError):
    """Execution exceeded its time budget and was cancelled."""

    kind = ErrorKind.TIMEOUT
    code = "TIMEOUT"


class WorkflowConfigurationError(DomainError):
    """Programming or wiring error (bad registration, missing context value)."""

    kind = ErrorKind.CONFIGURATION
    code = "CONFIGURATION_ERROR"


class WorkflowNotFoundError(NotFoundError):
    """No workflow is registered under the requested name."""

    code = "WORKFLOW_NOT_FOUND"


class WorkflowTypeError(WorkflowConfigurationError):
    """Caller's declared input/output types disagree with the registration."""

    code = "WORKFLOW_TYPE_MISMATCH"


class ContextValueMissingError(WorkflowConfigurationError):
    """A step required a context value that no earlier step stored."""

    code = "CONTEXT_VALUE_MISSING"


class WorkflowLockError(ConflictError):
    """The aggregate lock could not be acquired within the wait budget."""

    code = "LOCK_UNAVAILABLE"


def classify(error: BaseException) -> ErrorKind:
    """Map any exception onto the shared error taxonomy.

    Args:
        error: Exception raised by a step, the engine or a collaborator

    Returns:
        ErrorKind for the error. Untagged exceptions are infrastructure failures.
    """
    if isinstance(error, DomainError):
        return error.kind
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.INFRASTRUCTURE


def error_code(error: BaseException) -> str:
    """Stable machine-readable code for an exception."""
    if isinstance(error, DomainError):
        return error.code
    if isinstance(error, TimeoutError):
        return WorkflowTimeoutError.code
    return InfrastructureError.code


def describe_error(error: BaseException) -> dict[str, object]:
    """Transport-agnostic error body: kind, code and message."""
    if isinstance(error, DomainError):
        return error.to_dict()
    return {
        "kind": classify(error).value,
        "code": error_code(error),
        "message": str(error) or error.__class__.__name__,
    }


__all__ = [
    "ConflictError",
    "ContextValueMissingError",
    "DomainError",
    "ErrorKind",
    "InfrastructureError",
    "NotFoundError",
    "ValidationError",
    "WorkflowConfigurationError",
    "WorkflowLockError",
    "WorkflowNotFoundError",
    "WorkflowTimeoutError",
    "WorkflowTypeError",
    "classify",
    "describe_error",
    "error_code",
]
