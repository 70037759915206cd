"""
Domain Exceptions.

Every failure raised by entities and workflow steps carries an ErrorKind tag.
The tag is what the orchestration engine classifies on and what the API layer
maps to an HTTP status; the concrete class only adds a stable error code.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure categories shared by the domain, the engine and the API."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INFRASTRUCTURE = "infrastructure"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"


class DomainError(Exception):
    """
    Base class for tagged failures.

    Subclasses set ``kind`` and ``code`` at class level; instances may
    override the code and attach structured details.
    """

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the error body used in results and HTTP responses."""
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(DomainError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"


class ConflictError(DomainError):
    """Input is well-formed but the aggregate is in the wrong state for it."""

    kind = ErrorKind.CONFLICT
    code = "INVALID_STATE"


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"


class InfrastructureError(DomainError):
    """A collaborator (provider, store, lock backend) failed."""

    kind = ErrorKind.INFRASTRUCTURE
    code = "INFRASTRUCTURE_ERROR"
