"""Resumable event streams on Redis Streams.

A run publishes its SSE events into ``artisan:stream:{stream_id}``. Any number
of clients can subscribe, from the start or from the last entry id they saw,
so a dropped connection resumes without losing or repeating events.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from artisan_studio.logging import get_logger
from artisan_studio.models.messages import TERMINAL_EVENT_TYPES, SSEEvent, get_event_type

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)


class StreamBroker:
    """Publishes run events and replays them to subscribers."""

    STREAM_PREFIX = "artisan:stream:"
    META_PREFIX = "artisan:stream-meta:"

    def __init__(
        self,
        redis: Redis,
        ttl_seconds: int = 3600,
        block_ms: int | None = 5000,
        poll_interval: float = 0.05,
        max_len: int = 10000,
    ) -> None:
        """Initialize the broker.

        Args:
            redis: Client created with ``decode_responses=True``.
            ttl_seconds: How long a finished stream stays replayable.
            block_ms: XREAD block timeout. None polls with non-blocking reads
                instead, for backends without blocking reads.
            poll_interval: Sleep between polls when block_ms is None.
            max_len: Approximate cap on entries per stream.
        """
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.block_ms = block_ms
        self.poll_interval = poll_interval
        self.max_len = max_len

    def _stream_key(self, stream_id: str) -> str:
        return f"{self.STREAM_PREFIX}{stream_id}"

    def _meta_key(self, stream_id: str) -> str:
        return f"{self.META_PREFIX}{stream_id}"

    async def publish(self, stream_id: str, event: SSEEvent) -> str:
        """Append an event. Returns its entry id."""
        event_type = get_event_type(event)
        entry_id = await self.redis.xadd(
            self._stream_key(stream_id),
            {"event": event_type, "data": event.model_dump_json()},
            maxlen=self.max_len,
            approximate=True,
        )
        logger.debug("Published event", stream_id=stream_id, event_type=event_type, entry_id=entry_id)
        return entry_id

    async def complete(self, stream_id: str) -> None:
        """Mark a stream as done and let it expire."""
        await self.redis.set(
            self._meta_key(stream_id), json.dumps({"status": "complete"}), ex=self.ttl_seconds
        )
        await self.redis.expire(self._stream_key(stream_id), self.ttl_seconds)
        logger.info("Stream complete", stream_id=stream_id, ttl=self.ttl_seconds)

    async def exists(self, stream_id: str) -> bool:
        return await self.redis.exists(self._stream_key(stream_id)) > 0

    async def is_complete(self, stream_id: str) -> bool:
        return await self.redis.exists(self._meta_key(stream_id)) > 0

    async def subscribe(
        self, stream_id: str, last_event_id: str = "0"
    ) -> AsyncIterator[dict[str, Any]]:
        """Replay and follow a stream.

        Yields sse-starlette event dicts ({"id", "event", "data"}) for every
        entry after ``last_event_id``, ending after a terminal event or once
        the stream is marked complete and drained.
        """
        key = self._stream_key(stream_id)
        last_id = last_event_id or "0"
        draining = False

        while True:
            block = None if draining else self.block_ms
            response = await self.redis.xread({key: last_id}, count=100, block=block)

            if not response:
                if draining:
                    return
                if await self.is_complete(stream_id):
                    # Entries may have landed between the read and the marker check
                    draining = True
                    continue
                if block is None:
                    await asyncio.sleep(self.poll_interval)
                continue

            for _key, entries in response:
                for entry_id, fields in entries:
                    last_id = entry_id
                    event_type = fields.get("event", "message")
                    yield {"id": entry_id, "event": event_type, "data": fields.get("data", "")}
                    if event_type in TERMINAL_EVENT_TYPES:
                        return
