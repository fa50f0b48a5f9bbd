# =============================================================================
# File: tests/fakes/fake_redis.py
# Description: In-memory stand-in for redis.asyncio pub/sub used by PubSubBus
# =============================================================================

from __future__ import annotations

import asyncio
import fnmatch
from typing import Any, Dict, List, Optional, Set


class FakeRedisBroker:
    """Shared channel space; several FakeRedis clients can publish into it."""

    def __init__(self):
        self.pubsubs: Set["FakePubSub"] = set()
        self.published: List[tuple] = []

    def client(self) -> "FakeRedis":
        return FakeRedis(self)


class FakeRedis:
    """
    Implements the subset of redis.asyncio.Redis that PubSubBus touches:
    publish(), pubsub() and aclose().
    """

    def __init__(self, broker: FakeRedisBroker):
        self.broker = broker
        self.closed = False
        self.fail_publish: Optional[Exception] = None

    async def publish(self, channel: str, data: Any) -> int:
        if self.fail_publish is not None:
            raise self.fail_publish
        self.broker.published.append((channel, data))
        receivers = 0
        for pubsub in list(self.broker.pubsubs):
            pattern = pubsub.match(channel)
            if pattern is not None:
                pubsub.queue.put_nowait({
                    "type": "pmessage",
                    "pattern": pattern,
                    "channel": channel.encode(),
                    "data": data.encode() if isinstance(data, str) else data,
                })
                receivers += 1
        return receivers

    def pubsub(self) -> "FakePubSub":
        return FakePubSub(self.broker)

    async def aclose(self) -> None:
        self.closed = True


class FakePubSub:

    def __init__(self, broker: FakeRedisBroker):
        self.broker = broker
        self.patterns: List[str] = []
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def match(self, channel: str) -> Optional[str]:
        for pattern in self.patterns:
            if fnmatch.fnmatchcase(channel, pattern):
                return pattern
        return None

    async def psubscribe(self, *patterns: str) -> None:
        self.patterns.extend(patterns)
        self.broker.pubsubs.add(self)

    async def punsubscribe(self, *patterns: str) -> None:
        if patterns:
            self.patterns = [p for p in self.patterns if p not in patterns]
        else:
            self.patterns = []
        if not self.patterns:
            self.broker.pubsubs.discard(self)

    async def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout or 0.001)
        except asyncio.TimeoutError:
            return None

    async def aclose(self) -> None:
        self.closed = True
        self.broker.pubsubs.discard(self)
