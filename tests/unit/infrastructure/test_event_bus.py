"""
Unit tests for infrastructure/event_bus.py - EventBus

Tests subscription management, sync/async dispatch and handler isolation.
"""
import asyncio
import logging

import pytest

from infrastructure.event_bus import EventBus, EventType, GraphEvent


def test_emit_delivers_to_subscribers(event_bus):
    received = []
    event_bus.subscribe(EventType.RELATIONSHIP_CHANGED, received.append)

    event = event_bus.emit(
        EventType.RELATIONSHIP_CHANGED,
        {"componentId": "card", "summary": {}},
        source="test",
    )

    assert received == [event]
    assert isinstance(event, GraphEvent)
    assert event.source == "test"
    assert event.timestamp > 0


def test_handlers_only_receive_their_event_type(event_bus):
    received = []
    event_bus.subscribe(EventType.GRAPH_RESET, received.append)

    event_bus.emit(EventType.RELATIONSHIP_CHANGED, {})

    assert received == []


def test_subscribe_is_idempotent(event_bus):
    received = []
    event_bus.subscribe(EventType.GRAPH_RESET, received.append)
    event_bus.subscribe(EventType.GRAPH_RESET, received.append)

    event_bus.emit(EventType.GRAPH_RESET, {})

    assert len(received) == 1
    assert event_bus.subscriber_count(EventType.GRAPH_RESET) == 1


def test_failing_handler_does_not_block_others(event_bus):
    received = []

    def broken(event):
        raise ValueError("handler bug")

    event_bus.subscribe(EventType.GRAPH_RESET, broken)
    event_bus.subscribe(EventType.GRAPH_RESET, received.append)

    event_bus.emit(EventType.GRAPH_RESET, {})

    assert len(received) == 1


def test_unsubscribe_and_clear(event_bus):
    handler = lambda event: None
    event_bus.subscribe(EventType.GRAPH_RESET, handler)
    event_bus.subscribe(EventType.RELATIONSHIP_LOST, handler)

    event_bus.unsubscribe(EventType.GRAPH_RESET, handler)
    assert event_bus.subscriber_count(EventType.GRAPH_RESET) == 0
    assert event_bus.subscriber_count() == 1

    event_bus.clear_subscribers()
    assert event_bus.subscriber_count() == 0


def test_async_handler_without_loop_is_skipped(event_bus):
    async def handler(event):
        pass

    event_bus.subscribe_async(EventType.GRAPH_RESET, handler)

    # No running loop: the handler is skipped with a warning, not an error
    event_bus.emit(EventType.GRAPH_RESET, {})


@pytest.mark.asyncio
async def test_async_handler_is_scheduled():
    bus = EventBus()
    received = []

    async def handler(event):
        received.append(event.type)

    bus.subscribe_async(EventType.COMPONENT_REGISTERED, handler)
    bus.emit(EventType.COMPONENT_REGISTERED, {"componentId": "a"})
    await asyncio.sleep(0)

    assert received == [EventType.COMPONENT_REGISTERED]


@pytest.mark.asyncio
async def test_async_handler_failure_is_logged_and_released(caplog):
    bus = EventBus()

    async def handler(event):
        raise RuntimeError("handler blew up")

    bus.subscribe_async(EventType.GRAPH_RESET, handler)
    with caplog.at_level(logging.ERROR, logger="relgraph.event_bus"):
        bus.emit(EventType.GRAPH_RESET, {})
        assert bus.pending_tasks == 1
        await asyncio.sleep(0.01)

    assert bus.pending_tasks == 0
    assert any("handler blew up" in r.getMessage() for r in caplog.records)


def test_buses_are_independent():
    first, second = EventBus(), EventBus()
    received = []
    first.subscribe(EventType.GRAPH_RESET, received.append)

    second.emit(EventType.GRAPH_RESET, {})

    assert received == []
