"""Tests for the refresh event bus."""

import pytest

from configport.core.events import EventBus
from configport.core.modules.transfer.constants import TransferEvent


class TestEventBus:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self):
        """Test that both plain and coroutine listeners receive the event detail."""
        bus = EventBus()
        received = []

        async def async_listener(event, detail):
            received.append(("async", event, detail))

        bus.subscribe(TransferEvent.RULES_UPDATED, lambda event, detail: received.append(("sync", event, detail)))
        bus.subscribe(TransferEvent.RULES_UPDATED, async_listener)

        await bus.emit(TransferEvent.RULES_UPDATED, {"imported": 1})

        assert received == [
            ("sync", TransferEvent.RULES_UPDATED, {"imported": 1}),
            ("async", TransferEvent.RULES_UPDATED, {"imported": 1}),
        ]

    @pytest.mark.asyncio
    async def test_events_are_separate(self):
        """Test that listeners only receive the event they subscribed to."""
        bus = EventBus()
        received = []
        bus.subscribe(TransferEvent.PROXY_RULES_UPDATED, lambda event, detail: received.append(event))

        await bus.emit(TransferEvent.RULES_UPDATED, {})

        assert received == []

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        """Test that the returned callable removes the listener."""
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(TransferEvent.WORKSPACE_DATA_REFRESH, lambda event, detail: received.append(detail))

        unsubscribe()
        unsubscribe()
        await bus.emit(TransferEvent.WORKSPACE_DATA_REFRESH, {"workspaceId": "ws-1"})

        assert received == []

    @pytest.mark.asyncio
    async def test_failing_listener_isolated(self):
        """Test that a failing listener neither raises nor stops the others."""
        bus = EventBus()
        received = []

        def failing(event, detail):
            raise RuntimeError("listener broke")

        bus.subscribe(TransferEvent.RULES_UPDATED, failing)
        bus.subscribe(TransferEvent.RULES_UPDATED, lambda event, detail: received.append(detail))

        await bus.emit(TransferEvent.RULES_UPDATED, {"imported": 2})

        assert received == [{"imported": 2}]
