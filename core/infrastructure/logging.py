"""
Logging infrastructure.

Provides logging utilities for the infrastructure layer and the workflow
engine. Every record carries the correlation id of the workflow execution
that produced it; the id lives in a context variable so concurrent
executions on the same event loop never see each other's id.
"""
import logging
from contextvars import ContextVar, Token
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s"

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_handler: Optional[logging.Handler] = None


class CorrelationIdFilter(logging.Filter):
    """Inject the current correlation id into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get() or "-"
        return True


def bind_correlation_id(correlation_id: str) -> Token:
    """
    Bind a correlation id to the current execution context.

    Args:
        correlation_id: Id to attach to every record logged from this context

    Returns:
        Token to pass to reset_correlation_id
    """
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: Token) -> None:
    """Restore the correlation id that was bound before bind_correlation_id."""
    _correlation_id.reset(token)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def configure_logging(level: str = "INFO") -> logging.Handler:
    """
    Install the correlation-aware stream handler on the root logger.

    Safe to call repeatedly; the handler is created once and only the level
    is updated afterwards.

    Args:
        level: Root log level name

    Returns:
        The installed handler
    """
    global _handler
    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _handler.addFilter(CorrelationIdFilter())
        root.addHandler(_handler)
    root.setLevel(level.upper())
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance.

    Args:
        name: Logger name (usually module name)

    Returns:
        Logger instance
    """
    if _handler is None:
        configure_logging()
    return logging.getLogger(name)
