from __future__ import annotations

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from doodle.store.redis_keys import GK
from doodle.transport.protocols import TOPICS

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[None]]

_sub_ids = itertools.count(1)


@dataclass(frozen=True)
class Subscription:
    topic: str
    sub_id: int


class Relay(Protocol):
    """
    Best-effort fan-out over the three game topics.
    No ack, no ordering across clients, no dedup: handlers must be idempotent.
    """

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None: ...

    async def subscribe(self, topic: str, handler: Handler) -> Subscription: ...

    async def unsubscribe(self, subscription: Subscription) -> None: ...

    async def close(self) -> None: ...


def _check_topic(topic: str) -> None:
    if topic not in TOPICS:
        raise ValueError(f"Unknown topic: {topic}")


async def _deliver(handlers: list[Handler], topic: str, payload: Dict[str, Any]) -> None:
    # one broken handler must not starve the others
    for h in handlers:
        try:
            await h(payload)
        except Exception:
            logger.exception("relay handler failed on topic %s", topic)


class InMemoryRelay:
    """
    In-process relay. publish() awaits every handler in subscription order.
    """

    def __init__(self) -> None:
        self._subs: Dict[str, Dict[int, Handler]] = {t: {} for t in TOPICS}
        self.published: list[tuple[str, Dict[str, Any]]] = []

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        _check_topic(topic)
        self.published.append((topic, payload))
        await _deliver(list(self._subs[topic].values()), topic, payload)

    async def subscribe(self, topic: str, handler: Handler) -> Subscription:
        _check_topic(topic)
        sub = Subscription(topic=topic, sub_id=next(_sub_ids))
        self._subs[topic][sub.sub_id] = handler
        return sub

    async def unsubscribe(self, subscription: Subscription) -> None:
        self._subs.get(subscription.topic, {}).pop(subscription.sub_id, None)

    async def close(self) -> None:
        for handlers in self._subs.values():
            handlers.clear()


class RedisRelay:
    """
    Redis pub/sub relay. One PubSub connection and one listener task per relay;
    payloads travel as JSON on channel doodle:<topic>.
    """

    def __init__(self, r: Redis, retry_sec: float = 1.0) -> None:
        self.r = r
        self.retry_sec = retry_sec
        self._subs: Dict[str, Dict[int, Handler]] = {t: {} for t in TOPICS}
        self._pubsub: Optional[PubSub] = None
        self._listener: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        _check_topic(topic)
        await self.r.publish(GK.channel(topic), json.dumps(payload))

    async def subscribe(self, topic: str, handler: Handler) -> Subscription:
        _check_topic(topic)
        sub = Subscription(topic=topic, sub_id=next(_sub_ids))
        async with self._lock:
            first = not self._subs[topic]
            self._subs[topic][sub.sub_id] = handler
            if self._pubsub is None:
                self._pubsub = self.r.pubsub()
            if first:
                await self._pubsub.subscribe(GK.channel(topic))
            if self._listener is None or self._listener.done():
                self._listener = asyncio.create_task(self._listen())
        return sub

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            handlers = self._subs.get(subscription.topic, {})
            handlers.pop(subscription.sub_id, None)
            if not handlers and self._pubsub is not None:
                await self._pubsub.unsubscribe(GK.channel(subscription.topic))

    async def close(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        for handlers in self._subs.values():
            handlers.clear()

    async def _listen(self) -> None:
        # runs until close() or until nothing is subscribed; subscribe() restarts it
        reconnect = False
        while self._pubsub is not None:
            try:
                if reconnect:
                    await self._reconnect()
                    reconnect = False
                pubsub = self._pubsub
                if pubsub is None:
                    return
                async for message in pubsub.listen():
                    await self._on_message(message)
                return
            except RedisError as e:
                logger.warning("relay lost its Redis connection: %s; retrying in %.1fs", e, self.retry_sec)
                reconnect = True
                await asyncio.sleep(self.retry_sec)

    async def _reconnect(self) -> None:
        async with self._lock:
            old = self._pubsub
            if old is None:
                return
            self._pubsub = self.r.pubsub()
            try:
                await old.aclose()
            except RedisError as e:
                logger.debug("closing stale pubsub failed: %s", e)
            channels = [GK.channel(t) for t, handlers in self._subs.items() if handlers]
            if channels:
                await self._pubsub.subscribe(*channels)
        logger.info("relay resubscribed to %d channel(s)", len(channels))

    async def _on_message(self, message: Dict[str, Any]) -> None:
        if message.get("type") != "message":
            return
        channel = message.get("channel")
        if isinstance(channel, bytes):
            channel = channel.decode("utf-8")
        topic = str(channel).split(":", 1)[-1]
        if topic not in self._subs:
            return
        data = message.get("data")
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            payload = json.loads(data)
        except (TypeError, ValueError):
            logger.warning("dropping non-JSON payload on %s", channel)
            return
        await _deliver(list(self._subs[topic].values()), topic, payload)
