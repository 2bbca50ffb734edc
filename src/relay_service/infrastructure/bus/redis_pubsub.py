"""Redis Pub/Sub relay for room emits spanning several server instances."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from relay_service.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

RESUBSCRIBE_DELAY_SECONDS = 2.0

OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisRoomBus:
    """Publishes room envelopes and feeds envelopes from peers to ``callback``.

    Implements application.ports.bus.EventPublisher.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def channel(self) -> str:
        return self._channel

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        raw = serialize_event(payload.get("event_type", "unknown"), payload)
        await self._redis.publish(channel, raw)

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-room-bus")
        logger.info("Room bus listening on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Room bus stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Room bus connection lost, resubscribing in %.0fs", RESUBSCRIBE_DELAY_SECONDS)
                await asyncio.sleep(RESUBSCRIBE_DELAY_SECONDS)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self._handle(message["data"])
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()

    async def _handle(self, raw: str | bytes) -> None:
        try:
            event_type, data = deserialize_event(raw)
        except (ValueError, KeyError):
            logger.warning("Discarding malformed room envelope: %r", raw)
            return
        try:
            await self._callback(event_type, data)
        except Exception:
            logger.exception("Error dispatching room envelope %s", event_type)
