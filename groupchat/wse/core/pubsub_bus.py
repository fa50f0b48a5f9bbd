# =============================================================================
# File: groupchat/wse/core/pubsub_bus.py
# Description: Topic pub/sub for subscriptions with optional Redis fan-out
# =============================================================================

"""
PubSubBus - In-process topic delivery plus Redis Pub/Sub broadcast

Architecture:
    Command handler → EventDispatcher → PubSubBus.publish(topic, event)
                                              ↓
                         local subscribers (bounded asyncio.Queue each)
                                              ↓ (when redis_client is set)
                         Redis PUBLISH "wse:<topic>" → other instances
                                              ↓
                         each instance drops its own echoes and delivers
                         to its local subscribers

Delivery is at-least-once per connected subscriber and ordered within a
topic on a single instance.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Iterable, Optional, Set

from groupchat.config.reliability_config import ReliabilityConfigs
from groupchat.config.wse_config import WSEConfig, get_wse_config
from groupchat.infra.reliability.retry import retry_async

log = logging.getLogger("groupchat.wse.pubsub")


class Subscription:
    """A subscriber's view of one or more topics"""

    def __init__(self, topics: Iterable[str], maxsize: int):
        self.id = uuid.uuid4().hex
        self.topics: Set[str] = set(topics)
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    async def get(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Next event. Raises asyncio.TimeoutError when timeout elapses."""
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Dict[str, Any]]:
        while not self.closed:
            yield await self.queue.get()


class PubSubBus:
    """
    Topic Pub/Sub Bus

    Example Usage:
        ```python
        bus = PubSubBus(redis_client=redis_client)
        await bus.initialize()

        sub = bus.subscribe(["group:10:messages"])
        await bus.publish("group:10:messages", {"event_type": "messageAdded"})
        event = await sub.get()
        ```
    """

    def __init__(self, redis_client: Any = None, config: Optional[WSEConfig] = None):
        self._config = config or get_wse_config()
        self.redis_client = redis_client
        self.pubsub: Optional[Any] = None
        self.instance_id = self._config.instance_id or uuid.uuid4().hex

        # topic -> subscriptions
        self._topics: Dict[str, Set[Subscription]] = {}
        self._subscriptions: Dict[str, Subscription] = {}

        self._running = False
        self._listener_task: Optional[asyncio.Task] = None

        # Metrics
        self._messages_published = 0
        self._messages_received = 0
        self._messages_dropped = 0

    @property
    def channel_prefix(self) -> str:
        return self._config.channel_prefix

    async def initialize(self) -> None:
        """Start the Redis listener when a client is configured."""
        if self._running:
            return
        self._running = True

        if not self.redis_client:
            log.info("[PUBSUB_BUS] Running in-process only (no Redis client)")
            return

        try:
            self.pubsub = self.redis_client.pubsub()
            await self.pubsub.psubscribe(f"{self.channel_prefix}*")
            self._listener_task = asyncio.create_task(self._listen_loop())
            log.info(f"[PUBSUB_BUS] Redis fan-out enabled (instance {self.instance_id})")
        except Exception as e:
            log.error(f"Failed to initialize PubSubBus: {e}", exc_info=True)
            self._running = False
            raise

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, topics: Iterable[str]) -> Subscription:
        """Register a subscriber for the given topics."""
        subscription = Subscription(topics, self._config.subscriber_queue_size)
        for topic in subscription.topics:
            self._topics.setdefault(topic, set()).add(subscription)
        self._subscriptions[subscription.id] = subscription
        log.debug(f"[PUBSUB_BUS] Subscribed {subscription.id} to {sorted(subscription.topics)}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.closed = True
        self._subscriptions.pop(subscription.id, None)
        for topic in subscription.topics:
            subscribers = self._topics.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(subscription)
            if not subscribers:
                del self._topics[topic]
        log.debug(f"[PUBSUB_BUS] Unsubscribed {subscription.id}")

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    # =========================================================================
    # Publishing
    # =========================================================================

    async def publish(self, topic: str, event: Dict[str, Any]) -> int:
        """
        Deliver an event to local subscribers, then broadcast it to other
        instances through Redis. Returns the number of local deliveries.
        """
        delivered = await self._deliver_local(topic, event)
        self._messages_published += 1

        if self.redis_client:
            envelope = {"origin": self.instance_id, "topic": topic, "event": event}
            await retry_async(
                self.redis_client.publish,
                f"{self.channel_prefix}{topic}",
                json.dumps(envelope, default=str),
                retry_config=ReliabilityConfigs.redis_publish_retry(),
                context=f"redis publish {topic}",
            )

        log.debug(f"[PUBSUB_BUS] Published {event.get('event_type', 'unknown')} to {topic} ({delivered} local)")
        return delivered

    async def _deliver_local(self, topic: str, event: Dict[str, Any]) -> int:
        delivered = 0
        for subscription in list(self._topics.get(topic, ())):
            try:
                await asyncio.wait_for(
                    subscription.queue.put(event),
                    timeout=self._config.send_timeout_seconds,
                )
                delivered += 1
            except asyncio.TimeoutError:
                self._messages_dropped += 1
                log.warning(f"[PUBSUB_BUS] Subscriber {subscription.id} queue full, dropped event on {topic}")
        return delivered

    # =========================================================================
    # Redis listener
    # =========================================================================

    async def _listen_loop(self) -> None:
        log.info("[PUBSUB_BUS] Redis listener loop started")
        while self._running:
            try:
                message = await self.pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message and message.get('type') in ('pmessage', 'message'):
                    await self._process_message(message)
            except asyncio.CancelledError:
                break
            except Exception as e:
                log.error(f"PubSubBus listener error: {e}", exc_info=True)
                await asyncio.sleep(1.0)

    async def _process_message(self, message: Dict[str, Any]) -> None:
        data = message['data']
        data_str = data.decode('utf-8') if isinstance(data, bytes) else data

        try:
            envelope = json.loads(data_str)
        except ValueError as e:
            log.error(f"Failed to deserialize pub/sub message: {e}")
            return

        if envelope.get("origin") == self.instance_id:
            return

        self._messages_received += 1
        await self._deliver_local(envelope["topic"], envelope["event"])

    async def shutdown(self) -> None:
        """Stop the listener and close the Redis pub/sub connection."""
        log.info("Shutting down PubSubBus...")
        self._running = False

        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None

        if self.pubsub:
            try:
                await self.pubsub.punsubscribe()
                await self.pubsub.aclose()
            except Exception as e:
                log.error(f"Error closing pubsub: {e}")
            self.pubsub = None

        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)

        log.info(
            f"PubSubBus shut down - "
            f"Published: {self._messages_published}, "
            f"Received: {self._messages_received}, "
            f"Dropped: {self._messages_dropped}"
        )

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "topics": len(self._topics),
            "subscriptions": len(self._subscriptions),
            "messages_published": self._messages_published,
            "messages_received": self._messages_received,
            "messages_dropped": self._messages_dropped,
            "redis": self.redis_client is not None,
        }

# =============================================================================
# EOF
# =============================================================================
