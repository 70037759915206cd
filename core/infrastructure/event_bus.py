"""
Event Bus Implementation (Infrastructure Layer).

Keeps published domain events in memory and notifies subscribers.
"""
import inspect
import logging
from typing import Callable, Dict, List, Optional

from core.domain.event_bus import EventBus
from core.domain.events.base import DomainEvent


logger = logging.getLogger(__name__)

Subscriber = Callable[[DomainEvent], object]


class InMemoryDomainEventBus(EventBus):
    """
    In-Memory Domain Event Bus.

    Subscribers register for one event type or, with no type, for every
    event. A failing subscriber is logged and skipped; publishing never
    raises on its behalf.
    """

    def __init__(self, history_size: int = 1000):
        self._subscribers: Dict[Optional[str], List[Subscriber]] = {}
        self._published: List[DomainEvent] = []
        self._history_size = history_size

    @property
    def published_events(self) -> List[DomainEvent]:
        return list(self._published)

    def events_of_type(self, event_type: str) -> List[DomainEvent]:
        return [e for e in self._published if e.event_type == event_type]

    async def publish(self, event: DomainEvent) -> None:
        """
        Publish a single domain event.

        Args:
            event: Domain event to publish
        """
        logger.info(f"Publishing event: {event.event_type} (aggregate: {event.aggregate_id})")
        self._published.append(event)
        if len(self._published) > self._history_size:
            del self._published[0]
        await self._notify_subscribers(event)

    async def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)

    def subscribe(self, handler: Subscriber, event_type: Optional[str] = None) -> None:
        """
        Subscribe to domain events.

        Args:
            handler: Sync or async callable receiving the event
            event_type: Event class name to filter on; None receives all events
        """
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.info(f"Registered event subscriber: {getattr(handler, '__name__', handler)!s}")

    def unsubscribe(self, handler: Subscriber, event_type: Optional[str] = None) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def _notify_subscribers(self, event: DomainEvent) -> None:
        """Notify subscribers of the event type, then catch-all subscribers."""
        subscribers = self._subscribers.get(event.event_type, []) + self._subscribers.get(None, [])
        for subscriber in subscribers:
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Subscriber {getattr(subscriber, '__name__', subscriber)!s} failed "
                    f"for {event.event_type}: {e}",
                    exc_info=True,
                )
