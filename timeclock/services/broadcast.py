"""
Process-wide broadcast registry feeding the Server-Sent Events channels.

Each connected browser owns one bounded queue per topic.  ``publish``
never blocks: a subscriber whose queue is full misses that message.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

TOPICS = ("properties", "areas", "employees", "schedules", "attendance")


@dataclass(frozen=True)
class Message:
    event: str
    data: Any

    def encode(self) -> str:
        payload = json.dumps(jsonable_encoder(self.data))
        return f"event: {self.event}\ndata: {payload}\n\n"


class Broadcaster:
    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._topics: dict[str, set[asyncio.Queue[Message]]] = defaultdict(set)

    def subscribe(self, topic: str) -> asyncio.Queue[Message]:
        queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=self._queue_size)
        self._topics[topic].add(queue)
        logger.debug("Subscriber added to %s (%d total)", topic, len(self._topics[topic]))
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue[Message]) -> None:
        subscribers = self._topics.get(topic)
        if not subscribers:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._topics[topic]
        logger.debug("Subscriber removed from %s", topic)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    def publish(self, topic: str, event: str, data: Any) -> int:
        """Queue ``event`` for every subscriber of ``topic``; returns how many got it."""
        message = Message(event=event, data=data)
        delivered = 0
        for queue in list(self._topics.get(topic, ())):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Dropping %s event for a slow %s subscriber", event, topic)
                continue
            delivered += 1
        return delivered

    def publisher(self, topic: str) -> Callable[[str, Any], int]:
        """``publish`` bound to one topic, for injection into services."""
        return partial(self.publish, topic)

    async def stream(self, topic: str, *, keepalive: float = 15.0) -> AsyncIterator[str]:
        """Yield SSE frames for ``topic`` until the consumer goes away."""
        queue = self.subscribe(topic)
        try:
            yield ": connected\n\n"
            while True:
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield message.encode()
        finally:
            self.unsubscribe(topic, queue)
