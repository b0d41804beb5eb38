from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)

EVENT_NAME = "resource:changed"
DEFAULT_QUEUE_SIZE = 100


def build_change_event(
    *,
    collection: str,
    operation_type: str,
    document_key: str,
    full_document: dict[str, Any] | None,
    now_utc: datetime | None = None,
) -> dict[str, Any]:
    now_utc = now_utc or datetime.now(timezone.utc)
    return {
        "event": EVENT_NAME,
        "collection": collection,
        "operationType": operation_type,
        "documentKey": {"id": document_key},
        "fullDocument": full_document,
        "ts": now_utc.isoformat(),
    }


class ChangeBroadcaster:
    """Fans out change events to websocket subscribers.

    Without a Redis URL events stay in-process. With one, every publish goes
    through the pub/sub channel and each process relays what it receives to its
    own subscribers, so all API replicas see every write.
    """

    def __init__(
        self,
        *,
        redis_url: str = "",
        channel: str = EVENT_NAME,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._redis_url = redis_url.strip()
        self._channel = channel
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[dict[str, Any]]] = set()
        self._redis: Redis | None = None
        self._listener: asyncio.Task[None] | None = None
        self.dropped_events = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def uses_redis(self) -> bool:
        return self._redis is not None

    async def start(self) -> None:
        if not self._redis_url or self._redis is not None:
            return
        self._redis = Redis.from_url(self._redis_url)
        self._listener = asyncio.create_task(self._relay_from_redis())
        logger.info("realtime_redis_relay_started", channel=self._channel)

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._subscribers.clear()

    def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        self._subscribers.discard(queue)

    async def publish(
        self,
        *,
        collection: str,
        operation_type: str,
        document_key: str,
        full_document: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        event = build_change_event(
            collection=collection,
            operation_type=operation_type,
            document_key=document_key,
            full_document=full_document,
        )
        if self._redis is not None:
            try:
                await self._redis.publish(self._channel, json.dumps(event, default=str))
                return event
            except RedisError:
                logger.exception(
                    "realtime_publish_failed",
                    collection=collection,
                    operation_type=operation_type,
                )
        self._dispatch(event)
        return event

    def _dispatch(self, event: dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self.dropped_events += 1
                logger.warning(
                    "realtime_subscriber_lagging",
                    collection=event.get("collection"),
                    dropped_events=self.dropped_events,
                )

    async def _relay_from_redis(self) -> None:
        assert self._redis is not None
        try:
            async with self._redis.pubsub() as pubsub:
                await pubsub.subscribe(self._channel)
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    try:
                        event = json.loads(message["data"])
                    except (TypeError, ValueError):
                        logger.warning("realtime_relay_message_invalid", channel=self._channel)
                        continue
                    self._dispatch(event)
        except RedisError:
            logger.exception("realtime_redis_relay_failed", channel=self._channel)
