# =============================================================================
# File: groupchat/wse/publishers/domain_publisher.py
# Description: Forwards committed chat mutations to topic subscribers
# =============================================================================

"""
Event Dispatcher

    CommandHandler (after commit) → EventDispatcher → PubSubBus → subscribers

Publishing is best-effort: a failure is logged and never propagates back
into the command that already committed.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from groupchat.chat.cursor import encode_cursor
from groupchat.chat.events import GroupAdded, MessageAdded
from groupchat.chat.read_models import GroupReadModel, MessageReadModel
from groupchat.common.base.base_model import BaseEvent
from groupchat.wse.core.pubsub_bus import PubSubBus
from groupchat.wse.core.topics import group_messages_topic, user_groups_topic

log = logging.getLogger("groupchat.wse.domain_publisher")


class EventDispatcher:
    """Publishes messageAdded / groupAdded events"""

    def __init__(self, pubsub_bus: PubSubBus):
        self._pubsub_bus = pubsub_bus

        # Metrics
        self._events_forwarded = 0
        self._forwarding_errors = 0

    async def message_added(self, message: MessageReadModel, correlation_token: Optional[str] = None) -> None:
        event = MessageAdded(
            group_id=message.group_id,
            message=message,
            cursor=encode_cursor(message),
            correlation_token=correlation_token,
        )
        await self._publish(group_messages_topic(message.group_id), event)

    async def group_added(self, group: GroupReadModel, user_ids: Iterable[int]) -> None:
        for user_id in user_ids:
            await self._publish(user_groups_topic(user_id), GroupAdded(user_id=user_id, group=group))

    async def _publish(self, topic: str, event: BaseEvent) -> None:
        try:
            await self._pubsub_bus.publish(topic, event.to_dict_for_bus())
            self._events_forwarded += 1
        except Exception as e:
            self._forwarding_errors += 1
            log.error(f"[PUBSUB] Failed to publish {event.event_type} to {topic}: {e}", exc_info=True)

    def get_metrics(self) -> dict:
        return {
            "events_forwarded": self._events_forwarded,
            "forwarding_errors": self._forwarding_errors,
        }
