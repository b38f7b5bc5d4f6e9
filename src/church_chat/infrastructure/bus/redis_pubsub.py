"""Redis Pub/Sub relay of room broadcasts between chat-serving processes."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as aioredis

from church_chat.infrastructure.bus.serializer import (
    deserialize_room_event,
    serialize_room_event,
)
from church_chat.infrastructure.ws.rooms import RoomRouter

logger = logging.getLogger(__name__)


class RedisRoomBroadcaster:
    """Implements application.ports.bus.RoomBroadcaster over a Pub/Sub channel.

    Every process, the publishing one included, receives the event through
    its subscriber and delivers it to its own room members.
    """

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def broadcast(
        self,
        room: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        raw = serialize_room_event(room, event_type, data, exclude)
        await self._redis.publish(self._channel, raw)


class RedisRoomSubscriber:
    """Background task that listens to the room channel and delivers locally."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        rooms: RoomRouter,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._rooms = rooms
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-room-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    room, event_type, data, exclude = deserialize_room_event(message["data"])
                    await self._rooms.broadcast(room, event_type, data, exclude=exclude)
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
