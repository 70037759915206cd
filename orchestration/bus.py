"""Event bus - EventBusProtocol and InMemoryEventBus for lifecycle events."""

from collections.abc import Awaitable, Callable
from typing import Protocol

from core.infrastructure.logging import get_logger

from .events import Event

EventHandler = Callable[[Event], Awaitable[None]]

WILDCARD = "*"


class EventBusProtocol(Protocol):
    """Protocol for lifecycle event bus implementations."""

    async def publish(self, event: Event) -> None:
        """Publish an event.

        Args:
            event: Event to publish
        """
        ...

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event name.

        Args:
            event_name: Event name to subscribe to, or "*" for every event
            handler: Async handler function
        """
        ...


class InMemoryEventBus(EventBusProtocol):
    """In-memory event bus. Handler failures are logged, never propagated."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._logger = get_logger("orchestration.event_bus")

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Event) -> None:
        """Publish an event to handlers of its name, then wildcard handlers.

        Args:
            event: Event to publish
        """
        handlers = self._handlers.get(event.name, []) + self._handlers.get(WILDCARD, [])
        if not handlers:
            return

        self._logger.debug(
            f"Publishing {event.name} for execution {event.metadata.execution_id} "
            f"to {len(handlers)} handler(s)"
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as exc:
                self._logger.error(
                    f"Event handler {handler!r} failed for {event.name}: {exc}",
                    exc_info=True,
                )
