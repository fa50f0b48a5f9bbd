# =============================================================================
# File: groupchat/wse/subscriptions.py
# Description: Subscription authorization and per-connection sessions
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, TYPE_CHECKING

from groupchat.chat.guards import load_caller, load_group_for_member
from groupchat.common.exceptions.exceptions import AuthorizationError, ValidationError
from groupchat.security.auth_context import AuthContext
from groupchat.wse.core.pubsub_bus import PubSubBus, Subscription
from groupchat.wse.core.topics import group_messages_topic, user_groups_topic

if TYPE_CHECKING:
    from groupchat.chat.ports.persistence_port import PersistencePort

log = logging.getLogger("groupchat.wse.subscriptions")

MESSAGE_ADDED = "messageAdded"
GROUP_ADDED = "groupAdded"


async def authorize_message_added(
        persistence: 'PersistencePort',
        auth: AuthContext,
        group_ids: Iterable[int],
) -> List[str]:
    """Topics for messageAdded(groupIds). The caller must belong to every group."""
    group_ids = list(dict.fromkeys(group_ids))
    if not group_ids:
        raise ValidationError("messageAdded requires at least one group id")

    caller = await load_caller(persistence, auth)
    for group_id in group_ids:
        await load_group_for_member(persistence, group_id, caller.id)
    return [group_messages_topic(group_id) for group_id in group_ids]


async def authorize_group_added(
        persistence: 'PersistencePort',
        auth: AuthContext,
        user_id: int,
) -> List[str]:
    """Topics for groupAdded(userId). Only the caller's own topic is allowed."""
    caller = await load_caller(persistence, auth)
    if user_id != caller.id:
        raise AuthorizationError("Cannot subscribe to another user's groups")
    return [user_groups_topic(user_id)]


class SubscriptionSession:
    """
    Subscriptions held by one client connection.

    Each subscription gets a forwarding task that hands events to `send`
    in delivery order until the subscription is cancelled.
    """

    def __init__(
            self,
            bus: PubSubBus,
            persistence: 'PersistencePort',
            auth: AuthContext,
            send: Callable[[dict], Awaitable[None]],
    ):
        self._bus = bus
        self._persistence = persistence
        self._auth = auth
        self._send = send
        self._subscriptions: Dict[str, Subscription] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    async def subscribe(self, kind: str, group_ids: Iterable[int] = (), user_id: int = None) -> str:
        if kind == MESSAGE_ADDED:
            topics = await authorize_message_added(self._persistence, self._auth, group_ids)
        elif kind == GROUP_ADDED:
            if user_id is None:
                raise ValidationError("groupAdded requires a user id")
            topics = await authorize_group_added(self._persistence, self._auth, user_id)
        else:
            raise ValidationError(f"Unknown subscription: {kind}")

        subscription = self._bus.subscribe(topics)
        self._subscriptions[subscription.id] = subscription
        self._tasks[subscription.id] = asyncio.create_task(self._forward(kind, subscription))
        log.info(f"[PUBSUB] User {self._auth.user_id} subscribed to {kind} {topics}")
        return subscription.id

    async def unsubscribe(self, subscription_id: str) -> None:
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return
        self._bus.unsubscribe(subscription)
        task = self._tasks.pop(subscription_id, None)
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                log.warning(f"[PUBSUB] Forwarding for {subscription_id} had failed: {e}")

    async def close(self) -> None:
        for subscription_id in list(self._subscriptions):
            await self.unsubscribe(subscription_id)

    async def _forward(self, kind: str, subscription: Subscription) -> None:
        async for event in subscription:
            # Membership can end after subscribing (leaveGroup, deleteGroup)
            if kind == MESSAGE_ADDED and not await self._persistence.is_member(
                    event.get("group_id"), self._auth.user_id):
                log.debug(f"[PUBSUB] Dropped {kind} for user {self._auth.user_id}, no longer in group {event.get('group_id')}")
                continue
            await self._send({
                "type": "event",
                "id": subscription.id,
                "subscription": kind,
                "payload": event,
            })
