"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    Subscriptions are matched against the event's class hierarchy, so a
    handler subscribed to a base event receives every subclass.  Handler
    exceptions propagate to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]:
        matched: List[IEventHandler] = []
        for klass in event_class.__mro__:
            for handler in self._handlers.get(klass, []):
                if handler not in matched:
                    matched.append(handler)
        return matched

    def publish(self, event: DomainEvent) -> int:
        handlers = self.handlers_for(type(event))
        if not handlers:
            logger.warning(
                "event_bus.no_subscribers",
                event_name=event.event_name,
                aggregate_id=event.aggregate_id,
            )
        for handler in handlers:
            handler.handle(event)
        return len(handlers)


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
