"""
Lightweight event bus for decoupled relationship change notifications.

Follows publisher-subscriber pattern for updates without coupling the
graph engine to whatever renders or records them.

Design Principles:
- Publisher-subscriber pattern (decoupled)
- Supports both sync and async handlers
- Non-blocking (async handlers scheduled via create_task)
- Explicitly constructed and passed down; tests get independent buses
- Type-safe events via msgspec

Architecture:
    RelationshipManager → EventBus → [Debug panels, Loggers, Test probes]

Usage:
    bus = EventBus()

    def on_changed(event: GraphEvent):
        print(event.payload["componentId"], event.payload["summary"])

    bus.subscribe(EventType.RELATIONSHIP_CHANGED, on_changed)
    manager = RelationshipManager(event_bus=bus)
"""
from typing import Callable, List, Dict, Any, Set
from enum import Enum
import msgspec
import asyncio
import time
from collections import defaultdict
import logging


logger = logging.getLogger("relgraph.event_bus")


class EventType(str, Enum):
    """Types of events published by the relationship engine."""
    COMPONENT_REGISTERED = "component:registered"
    COMPONENT_UNREGISTERED = "component:unregistered"
    RELATIONSHIP_DETECTED = "relationship:detected"
    RELATIONSHIP_CHANGED = "relationship:changed"
    RELATIONSHIP_LOST = "relationship:lost"
    GRAPH_RESET = "graph:reset"


class GraphEvent(msgspec.Struct, kw_only=True):
    """
    Event emitted when the relationship graph changes.

    Attributes:
        type: Type of event (RELATIONSHIP_CHANGED, etc.)
        payload: Event-specific data (componentId, summary, ...)
        timestamp: Unix timestamp when event occurred
        source: Source of event ("relationship_manager", ...)
    """
    type: EventType
    payload: Dict[str, Any]
    timestamp: float
    source: str


class EventBus:
    """
    Event bus for relationship change notifications.

    Thread Safety:
        NOT thread-safe. Use external locking if needed for concurrent access.
        Async handlers are scheduled with create_task on the running loop.

    Performance:
        - O(1) event publishing
        - O(n) notification per event type (where n = subscriber count)
    """

    def __init__(self):
        """Initialize empty subscriber lists."""
        self._subscribers: Dict[EventType, List[Callable]] = defaultdict(list)
        self._async_subscribers: Dict[EventType, List[Callable]] = defaultdict(list)
        # Strong references until each scheduled handler finishes
        self._pending_tasks: Set[asyncio.Task] = set()

    def subscribe(self, event_type: EventType, handler: Callable[[GraphEvent], None]):
        """
        Subscribe to events with a synchronous handler.

        Args:
            event_type: Type of event to listen for
            handler: Callable that takes GraphEvent as argument
        """
        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)
            logger.debug(f"Subscribed sync handler to {event_type.value}")

    def subscribe_async(self, event_type: EventType, handler: Callable[[GraphEvent], Any]):
        """
        Subscribe to events with an async handler.

        Args:
            event_type: Type of event to listen for
            handler: Async callable that takes GraphEvent as argument
        """
        if handler not in self._async_subscribers[event_type]:
            self._async_subscribers[event_type].append(handler)
            logger.debug(f"Subscribed async handler to {event_type.value}")

    def publish(self, event: GraphEvent):
        """
        Publish an event to all subscribers.

        Note:
            - Sync handlers run immediately (blocking)
            - Async handlers are scheduled and run in the background
            - Exceptions in handlers are logged but don't propagate
        """
        logger.debug(
            f"Publishing {event.type.value} from {event.source} "
            f"(payload keys: {list(event.payload.keys())})"
        )

        for handler in self._subscribers[event.type]:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in sync handler for {event.type.value}: {e}",
                    exc_info=True
                )

        for handler in self._async_subscribers[event.type]:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(
                    f"Cannot schedule async handler for {event.type.value}: "
                    "no event loop running"
                )
                continue
            try:
                task = loop.create_task(handler(event))
            except Exception as e:
                logger.error(
                    f"Error scheduling async handler for {event.type.value}: {e}",
                    exc_info=True
                )
                continue
            self._pending_tasks.add(task)
            task.add_done_callback(self._on_task_done)

    @property
    def pending_tasks(self) -> int:
        """Number of scheduled async handlers that have not finished."""
        return len(self._pending_tasks)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Error in async handler: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__)
            )

    def emit(self, event_type: EventType, payload: Dict[str, Any], source: str = "unknown") -> GraphEvent:
        """Build a timestamped GraphEvent and publish it."""
        event = GraphEvent(
            type=event_type,
            payload=payload,
            timestamp=time.time(),
            source=source,
        )
        self.publish(event)
        return event

    def unsubscribe(self, event_type: EventType, handler: Callable):
        """Remove a handler (must be the same instance) from both lists."""
        if handler in self._subscribers[event_type]:
            self._subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed sync handler from {event_type.value}")

        if handler in self._async_subscribers[event_type]:
            self._async_subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed async handler from {event_type.value}")

    def clear_subscribers(self, event_type: EventType = None):
        """Clear all subscribers for an event type (or all types)."""
        if event_type is None:
            self._subscribers.clear()
            self._async_subscribers.clear()
            logger.info("Cleared all event subscribers")
        else:
            self._subscribers[event_type].clear()
            self._async_subscribers[event_type].clear()
            logger.info(f"Cleared subscribers for {event_type.value}")

    def subscriber_count(self, event_type: EventType = None) -> int:
        """Count of sync + async subscribers for an event type (None = all types)."""
        if event_type is None:
            total = sum(len(handlers) for handlers in self._subscribers.values())
            total += sum(len(handlers) for handlers in self._async_subscribers.values())
            return total
        return (
            len(self._subscribers[event_type]) +
            len(self._async_subscribers[event_type])
        )
