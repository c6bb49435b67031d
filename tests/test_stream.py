"""Tests for resumable event streams."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import pytest

from artisan_studio.models import CompleteEvent, ErrorEvent, StartEvent, TokenEvent

if TYPE_CHECKING:
    from artisan_studio.stream import StreamBroker


async def collect(broker: StreamBroker, stream_id: str, last_event_id: str = "0") -> list[dict]:
    return [event async for event in broker.subscribe(stream_id, last_event_id)]


class TestStreamBroker:
    """Tests for StreamBroker."""

    async def test_replay_until_terminal_event(self, broker: StreamBroker) -> None:
        await broker.publish("s1", StartEvent(message_id="m1"))
        await broker.publish("s1", TokenEvent(token="Hi", cumulative="Hi"))
        await broker.publish("s1", CompleteEvent(message_id="m1", response="Hi"))

        events = await collect(broker, "s1")

        assert [e["event"] for e in events] == ["start", "token", "complete"]
        assert json.loads(events[1]["data"]) == {"token": "Hi", "cumulative": "Hi"}

    async def test_resume_after_last_event_id(self, broker: StreamBroker) -> None:
        """A reconnecting client gets exactly the events it missed."""
        first = await broker.publish("s1", StartEvent(message_id="m1"))
        await broker.publish("s1", TokenEvent(token="Hi", cumulative="Hi"))
        await broker.publish("s1", ErrorEvent(code="CANCELLED", message="x", retryable=False))

        events = await collect(broker, "s1", last_event_id=first)

        assert [e["event"] for e in events] == ["token", "error"]
        assert first not in [e["id"] for e in events]

    async def test_follows_live_events(self, broker: StreamBroker) -> None:
        """Subscribers see events published after they attached."""
        await broker.publish("s1", StartEvent(message_id="m1"))
        subscriber = asyncio.create_task(collect(broker, "s1"))
        await asyncio.sleep(0.05)

        await broker.publish("s1", CompleteEvent(message_id="m1", response=""))
        events = await asyncio.wait_for(subscriber, timeout=2)

        assert [e["event"] for e in events] == ["start", "complete"]

    async def test_completed_stream_ends_when_drained(self, broker: StreamBroker) -> None:
        await broker.publish("s1", StartEvent(message_id="m1"))
        await broker.complete("s1")

        events = await asyncio.wait_for(collect(broker, "s1"), timeout=2)
        assert [e["event"] for e in events] == ["start"]

    async def test_event_published_just_before_completion(
        self, broker: StreamBroker, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An event racing the done marker is still delivered."""
        await broker.publish("s1", StartEvent(message_id="m1"))
        is_complete = broker.is_complete

        async def finish_during_check(stream_id: str) -> bool:
            if not await is_complete(stream_id):
                await broker.publish(stream_id, TokenEvent(token="Hi", cumulative="Hi"))
                await broker.complete(stream_id)
            return await is_complete(stream_id)

        monkeypatch.setattr(broker, "is_complete", finish_during_check)

        events = await asyncio.wait_for(collect(broker, "s1"), timeout=2)
        assert [e["event"] for e in events] == ["start", "token"]

    async def test_exists_and_complete(self, broker: StreamBroker) -> None:
        assert not await broker.exists("s1")
        await broker.publish("s1", StartEvent(message_id="m1"))
        assert await broker.exists("s1")
        assert not await broker.is_complete("s1")

        await broker.complete("s1")
        assert await broker.is_complete("s1")

    async def test_complete_sets_expiry(self, broker: StreamBroker) -> None:
        await broker.publish("s1", StartEvent(message_id="m1"))
        await broker.complete("s1")
        assert 0 < await broker.redis.ttl("artisan:stream:s1") <= broker.ttl_seconds
