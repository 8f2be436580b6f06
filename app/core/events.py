"""
Typed change notifications for the attendance ledger.

Every committed mutation publishes one ``FactsChanged`` event naming the
date range it touched and the tenant's new ledger revision. Dashboards and
payroll screens re-pull a fresh snapshot when they see a revision newer than
the one they rendered.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from datetime import date

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FactsChanged:
    tenant_id: str
    start: date
    end: date
    revision: int
    kind: str  # created | updated | locked | unlocked

    def to_json(self) -> str:
        payload = asdict(self)
        payload["start"] = self.start.isoformat()
        payload["end"] = self.end.isoformat()
        return json.dumps(payload, sort_keys=True)


Subscriber = Callable[[FactsChanged], Awaitable[None]]


class RedisEventPublisher:
    """Forward events to a Redis pub/sub channel as JSON."""

    def __init__(self, client: aioredis.Redis, channel: str):
        self._client = client
        self._channel = channel

    @classmethod
    def from_url(cls, url: str, channel: str) -> "RedisEventPublisher":
        return cls(aioredis.from_url(url), channel)

    async def __call__(self, event: FactsChanged) -> None:
        await self._client.publish(self._channel, event.to_json())

    async def close(self) -> None:
        await self._client.aclose()


class EventBus:
    """In-process fan-out of ``FactsChanged`` events.

    Delivery happens after the mutation has committed, so a failing
    subscriber is logged and skipped; it never undoes the write.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._redis: RedisEventPublisher | None = None

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def attach_redis(self, publisher: RedisEventPublisher) -> None:
        self._redis = publisher

    async def publish(self, event: FactsChanged) -> None:
        targets: list[Subscriber] = list(self._subscribers)
        if self._redis is not None:
            targets.append(self._redis)

        for subscriber in targets:
            try:
                await subscriber(event)
            except Exception as exc:
                logger.error(
                    "Failed to deliver %s event (revision %d): %s",
                    event.kind,
                    event.revision,
                    exc,
                    exc_info=True,
                )

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None


event_bus = EventBus()
