"""In-process domain event bus.

Use cases publish the events drained from an aggregate after it has been
persisted. Handlers are async callables; a failing handler is logged and
never affects the publisher or the remaining handlers.
"""

from collections import Counter, defaultdict
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from app.domain import events as domain_events
from app.domain.events import DomainEvent
from app.logging_config import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """Fire-and-forget publish/subscribe keyed by event type."""

    def __init__(self, record_history: bool = False):
        """Initialize an empty bus.

        Args:
            record_history: Keep every published event in ``published_events``
                (useful in tests)
        """
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._record_history = record_history
        self.published_events: List[DomainEvent] = []
        self.event_counts: Counter = Counter()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)
            logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {event_type}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event to every handler subscribed to its type."""
        self.event_counts[event.event_type] += 1
        if self._record_history:
            self.published_events.append(event)

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler {getattr(handler, '__name__', handler)} failed "
                    f"for {event.event_type}: {e}",
                    exc_info=True,
                    extra={"event_id": event.event_id},
                )

    async def publish_all(self, pending: Iterable[DomainEvent]) -> None:
        """Publish events in the order they were recorded."""
        for event in pending:
            await self.publish(event)

    def clear(self) -> None:
        """Remove every handler and forget published history."""
        self._handlers.clear()
        self.published_events.clear()
        self.event_counts.clear()

    def handler_count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


async def audit_log_handler(event: DomainEvent) -> None:
    """Write an audit entry for every domain event."""
    logger.info(
        f"Audit: {event.event_type} on {event.aggregate_id}",
        extra={"audit": event.to_dict()},
    )


class StatisticsHandler:
    """Keeps running totals of surveys, dynamic questions and submissions."""

    def __init__(self):
        self.surveys_created = 0
        self.dynamic_questions_added = 0
        self.responses_submitted = 0

    async def __call__(self, event: DomainEvent) -> None:
        if event.event_type == domain_events.SURVEY_CREATED:
            self.surveys_created += 1
        elif event.event_type == domain_events.DYNAMIC_QUESTION_ADDED:
            self.dynamic_questions_added += 1
        elif event.event_type == domain_events.SURVEY_RESPONSE_SUBMITTED:
            self.responses_submitted += 1

    def snapshot(self) -> Dict[str, int]:
        return {
            "surveys_created": self.surveys_created,
            "dynamic_questions_added": self.dynamic_questions_added,
            "responses_submitted": self.responses_submitted,
        }


def register_default_handlers(bus: EventBus, statistics: StatisticsHandler) -> None:
    for event_type in (
        domain_events.SURVEY_CREATED,
        domain_events.DYNAMIC_QUESTION_ADDED,
        domain_events.SURVEY_RESPONSE_SUBMITTED,
    ):
        bus.subscribe(event_type, audit_log_handler)
        bus.subscribe(event_type, statistics)


# Global singleton instances
_bus_instance: Optional[EventBus] = None
_statistics_instance: Optional[StatisticsHandler] = None


def get_event_bus() -> EventBus:
    """Get global EventBus instance with the default handlers registered.

    Returns:
        Global EventBus instance
    """
    global _bus_instance, _statistics_instance
    if _bus_instance is None:
        _bus_instance = EventBus()
        _statistics_instance = StatisticsHandler()
        register_default_handlers(_bus_instance, _statistics_instance)
    return _bus_instance


def get_event_statistics() -> StatisticsHandler:
    get_event_bus()
    return _statistics_instance
