# campus_portal/core/realtime.py
from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, Dict, List, Protocol, Set, Tuple

logger = logging.getLogger(__name__)

EVENTS_TOPIC = "events"


def user_topic(user_id) -> str:
    return f"user_{user_id}"


class Broadcaster(Protocol):
    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        ...


def format_sse(event: str, payload: Dict[str, Any]) -> str:
    data = json.dumps(payload, ensure_ascii=False, default=str)
    # SSE wire format: event: <name>\ndata: <json>\n\n
    return f"event: {event}\ndata: {data}\n\n"


class SseHub:
    """
    In-process pub/sub for Server-Sent Events.

    Each subscriber owns a bounded queue per topic. Delivery is at-most-once:
    a full queue drops the message for that subscriber only.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: Dict[str, Set["asyncio.Queue[str]"]] = defaultdict(set)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            msg = format_sse(event, payload)
        except (TypeError, ValueError):
            logger.warning("Unserializable realtime payload dropped", extra={"topic": topic, "event": event})
            return
        for queue in list(self._subscribers.get(topic, ())):
            try:
                queue.put_nowait(msg)
            except asyncio.QueueFull:
                logger.warning("Realtime subscriber queue full", extra={"topic": topic})

    def open(self, topic: str) -> "asyncio.Queue[str]":
        queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[topic].add(queue)
        return queue

    def close(self, topic: str, queue: "asyncio.Queue[str]") -> None:
        subs = self._subscribers.get(topic)
        if subs is None:
            return
        subs.discard(queue)
        if not subs:
            self._subscribers.pop(topic, None)

    async def subscribe(self, topic: str) -> AsyncIterator[str]:
        """
        Async generator of SSE messages for one topic.
        """
        queue = self.open(topic)
        try:
            while True:
                yield await queue.get()
        finally:
            self.close(topic, queue)


class RecordingBroadcaster:
    """Keeps published messages in memory; used when no live channel is wired."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str, Dict[str, Any]]] = []

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        self.messages.append((topic, event, payload))

    def for_topic(self, topic: str) -> List[Tuple[str, Dict[str, Any]]]:
        return [(event, payload) for t, event, payload in self.messages if t == topic]


async def safe_publish(broadcaster: Broadcaster, topic: str, event: str, payload: Dict[str, Any]) -> None:
    """Best-effort publish: delivery failures are logged, never raised."""
    try:
        await broadcaster.publish(topic, event, payload)
    except Exception:
        logger.warning("Realtime publish failed", extra={"topic": topic, "event": event}, exc_info=True)
