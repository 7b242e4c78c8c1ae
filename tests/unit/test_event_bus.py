"""Unit tests for the event bus."""

import pytest

from dtracked.core.events import Event, EventBus, EventType

pytestmark = pytest.mark.asyncio


class TestEventBus:
    """Subscription, dispatch and history."""

    async def test_emit_sync_then_drain(self):
        bus = EventBus()
        seen = []

        @bus.on(EventType.ROUTE_READY)
        async def handler(event: Event):
            seen.append(event.data)

        bus.emit_sync(EventType.ROUTE_READY, data="draft", source="test")
        assert seen == []

        assert await bus.drain() == 1
        assert seen == ["draft"]
        assert bus.get_history()[0].source == "test"

    async def test_priority_order(self):
        bus = EventBus()
        order = []

        async def late(event):
            order.append("late")

        async def early(event):
            order.append("early")

        bus.subscribe(EventType.TRACKING_STARTED, late, priority=200)
        bus.subscribe(EventType.TRACKING_STARTED, early, priority=10)
        await bus.emit(EventType.TRACKING_STARTED)
        await bus.drain()

        assert order == ["early", "late"]

    async def test_once_handler_removed(self):
        bus = EventBus()
        calls = []

        async def handler(event):
            calls.append(event)

        bus.subscribe(EventType.PATH_UPDATED, handler, once=True)
        bus.emit_sync(EventType.PATH_UPDATED)
        bus.emit_sync(EventType.PATH_UPDATED)
        await bus.drain()

        assert len(calls) == 1

    async def test_handler_error_isolated(self):
        bus = EventBus()
        calls = []

        async def broken(event):
            raise RuntimeError("boom")

        async def fine(event):
            calls.append(event)

        bus.subscribe(EventType.POSITION_ERROR, broken, priority=1)
        bus.subscribe(EventType.POSITION_ERROR, fine, priority=2)
        bus.emit_sync(EventType.POSITION_ERROR)
        await bus.drain()

        assert len(calls) == 1
        assert bus.get_stats()["handler_errors"] == 1

    async def test_unsubscribe(self):
        bus = EventBus()

        async def handler(event):
            pass

        bus.subscribe(EventType.ROUTE_SAVED, handler)
        assert bus.unsubscribe(EventType.ROUTE_SAVED, handler) is True
        assert bus.unsubscribe(EventType.ROUTE_SAVED, handler) is False

    async def test_processing_loop(self):
        bus = EventBus()
        seen = []

        @bus.on(EventType.TRACKING_STOPPED)
        async def handler(event):
            seen.append(event.type)

        await bus.start()
        bus.emit_sync(EventType.TRACKING_STOPPED)
        await bus.stop()

        assert seen == [EventType.TRACKING_STOPPED]

    async def test_stop_dispatches_backlog(self):
        """Events queued right before stop, and those they cause, are all delivered."""
        bus = EventBus()
        seen = []

        @bus.on(EventType.TRACKING_STOPPED)
        async def on_stopped(event):
            seen.append(event.type)
            bus.emit_sync(EventType.ROUTE_READY)

        @bus.on(EventType.ROUTE_READY)
        async def on_ready(event):
            seen.append(event.type)

        await bus.start()
        bus.emit_sync(EventType.PATH_UPDATED)
        bus.emit_sync(EventType.TRACKING_STOPPED)
        await bus.stop(timeout=1.0)

        assert seen == [EventType.TRACKING_STOPPED, EventType.ROUTE_READY]
        assert bus.get_stats()["queue_size"] == 0
        assert len(bus.get_history()) == 3

    async def test_history_filter(self):
        bus = EventBus(max_history=2)
        for _ in range(3):
            bus.emit_sync(EventType.PATH_UPDATED)
        bus.emit_sync(EventType.ROUTE_READY)
        await bus.drain()

        assert len(bus.get_history()) == 2
        assert len(bus.get_history(EventType.ROUTE_READY)) == 1
        bus.clear_history()
        assert bus.get_history() == []
