"""
Broadcast hub: per-topic fan-out of store events to live subscribers.

Each subscriber owns a bounded buffer; when it is full the oldest event is
dropped (and counted), so a slow or stalled subscriber never creates
backpressure on ingestion. publish() never blocks and never awaits. Closed
subscriptions are pruned lazily on the next publish to their topic. There is
no replay: a subscriber only sees events published after it registered.

Publishing from a thread other than the subscriber's event loop is supported;
the subscriber is woken with call_soon_threadsafe.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from backend_hyperchain.core.exceptions import SubscriptionClosedError
from backend_hyperchain.hyperchain_logging import get_logger

logger = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 256

_subscription_ids = itertools.count(1)


class Topic(str, Enum):
    NEW_TRANSACTION = "new-transaction"
    NEW_ALERT = "new-alert"
    ANALYTICS_UPDATED = "analytics-updated"


ALL_TOPICS = frozenset(Topic)


@dataclass(frozen=True)
class BroadcastEvent:
    """One published event; payload is the entity (transaction, alert or summary)."""

    topic: Topic
    payload: Any
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Subscription:
    """
    A subscriber handle for one topic.

    Read with `await sub.get()`, `sub.get_nowait()` or `async for event in sub`.
    Iteration ends once the subscription is closed and its buffer drained.
    """

    def __init__(self, topic: Topic, buffer_size: int) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        self.id = next(_subscription_ids)
        self.topic = topic
        self.dropped = 0
        self._buffer: deque[BroadcastEvent] = deque(maxlen=buffer_size)
        self._wakeup = asyncio.Event()
        self._closed = False
        try:
            self._loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def close(self) -> None:
        """Mark closed; the hub drops it on its next publish to this topic."""
        if self._closed:
            return
        self._closed = True
        self._notify()

    def _push(self, event: BroadcastEvent) -> bool:
        """Buffer an event (dropping the oldest when full). False if closed."""
        if self._closed:
            return False
        if len(self._buffer) == self._buffer.maxlen:
            self.dropped += 1
        self._buffer.append(event)
        self._notify()
        return not self._closed

    def _notify(self) -> None:
        loop = self._loop
        if loop is None:
            self._wakeup.set()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._wakeup.set()
            return
        try:
            loop.call_soon_threadsafe(self._wakeup.set)
        except RuntimeError:
            # Subscriber's loop is gone: treat as disconnected
            self._closed = True

    def get_nowait(self) -> BroadcastEvent | None:
        """Next buffered event, or None when the buffer is empty."""
        if self._buffer:
            return self._buffer.popleft()
        return None

    async def get(self) -> BroadcastEvent:
        """Wait for the next event; raise SubscriptionClosedError once closed and drained."""
        while True:
            if self._buffer:
                return self._buffer.popleft()
            if self._closed:
                raise SubscriptionClosedError(f"subscription {self.id} closed")
            self._wakeup.clear()
            if self._buffer or self._closed:
                continue
            await self._wakeup.wait()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> BroadcastEvent:
        try:
            return await self.get()
        except SubscriptionClosedError:
            raise StopAsyncIteration from None


class BroadcastHub:
    """Registry of per-topic subscriptions with non-blocking fan-out."""

    def __init__(self, default_buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if default_buffer_size < 1:
            raise ValueError("default_buffer_size must be >= 1")
        self._default_buffer_size = default_buffer_size
        self._lock = threading.Lock()
        self._subscribers: dict[Topic, list[Subscription]] = {t: [] for t in Topic}

    def subscribe(self, topic: Topic | str, buffer_size: int | None = None) -> Subscription:
        """Register a new subscriber; it receives only events published from now on."""
        topic = Topic(topic)
        sub = Subscription(topic, self._default_buffer_size if buffer_size is None else buffer_size)
        with self._lock:
            self._subscribers[topic].append(sub)
        logger.info("subscriber_registered", topic=topic.value, subscription_id=sub.id)
        return sub

    def unsubscribe(self, sub: Subscription) -> bool:
        """Remove and close a subscription. Returns False if it was not registered."""
        sub.close()
        with self._lock:
            subs = self._subscribers[sub.topic]
            if sub not in subs:
                return False
            subs.remove(sub)
        logger.info("subscriber_unregistered", topic=sub.topic.value, subscription_id=sub.id)
        return True

    def publish(self, topic: Topic | str, payload: Any) -> int:
        """Deliver payload to every live subscriber of topic; return the number delivered."""
        topic = Topic(topic)
        event = BroadcastEvent(topic=topic, payload=payload)
        with self._lock:
            subs = list(self._subscribers[topic])
        delivered = 0
        dead: list[Subscription] = []
        for sub in subs:
            if sub._push(event):
                delivered += 1
            else:
                dead.append(sub)
        if dead:
            with self._lock:
                self._subscribers[topic] = [s for s in self._subscribers[topic] if s not in dead]
            logger.debug("subscribers_pruned", topic=topic.value, count=len(dead))
        return delivered

    def subscriber_count(self, topic: Topic | str | None = None) -> int:
        with self._lock:
            if topic is None:
                return sum(len(s) for s in self._subscribers.values())
            return len(self._subscribers[Topic(topic)])

    def close(self) -> None:
        """Close every subscription (shutdown)."""
        with self._lock:
            subs = [s for topic_subs in self._subscribers.values() for s in topic_subs]
            for topic in self._subscribers:
                self._subscribers[topic] = []
        for sub in subs:
            sub.close()
        logger.info("broadcast_hub_closed", subscriptions=len(subs))
