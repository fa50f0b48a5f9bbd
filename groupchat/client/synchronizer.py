# =============================================================================
# File: groupchat/client/synchronizer.py
# Description: Optimistic mutations and cache reconciliation for one client
# =============================================================================

"""
CacheSynchronizer

    dispatch_create_message()  → optimistic PENDING edge at the head (no I/O)
                               → background task: transport with per-attempt
                                 timeout and retry on transport errors only
                               → success: confirm_edge (CONFIRMED)
                               → failure: remove_edge, ConflictError

    load_messages() / load_more()  → merge_page by message key
    handle_event()                 → upsert_pushed_edge / add_group

Every cache change goes through CacheStore.patch, so pushes, pages and
mutation results are applied one at a time regardless of arrival order.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from groupchat.chat.enums import EdgeStatus
from groupchat.chat.events import GroupAdded, MessageAdded
from groupchat.chat.read_models import GroupReadModel, GroupView, MessageEdge
from groupchat.client import patches
from groupchat.client.cache_store import CacheStore, groups_key, messages_key
from groupchat.client.patches import CachedConnection, CachedEdge
from groupchat.client.transport import GraphTransport, is_transport_error
from groupchat.common.exceptions.exceptions import ConflictError
from groupchat.config.sync_config import SyncConfig, get_sync_config
from groupchat.infra.cqrs.handler_dependencies import utc_now
from groupchat.infra.reliability.retry import retry_async
from groupchat.security.auth_context import AuthContext

log = logging.getLogger("groupchat.client.sync")


def _retrieve_task_error(task: asyncio.Task) -> None:
    # Failures are reported through PendingMutation.result(); mark them retrieved
    if not task.cancelled():
        task.exception()


class PendingMutation:
    """Handle for a dispatched createMessage"""

    def __init__(self, correlation_token: str, group_id: int, placeholder: CachedEdge):
        self.correlation_token = correlation_token
        self.group_id = group_id
        self.placeholder = placeholder
        self.status = EdgeStatus.PENDING
        self.error: Optional[BaseException] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def placeholder_id(self) -> int:
        return self.placeholder.node.id

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def result(self) -> CachedEdge:
        """Confirmed edge, or ConflictError after rollback."""
        return await self._task


class CacheSynchronizer:
    """
    Client cache synchronizer for the user in `auth`.

    Example Usage:
        ```python
        sync = CacheSynchronizer(transport, AuthContext(user_id=1))
        await sync.load_messages(10)
        pending = await sync.dispatch_create_message(10, "hi")   # returns at once
        edge = await pending.result()                            # id 501, CONFIRMED
        ```
    """

    def __init__(
            self,
            transport: GraphTransport,
            auth: AuthContext,
            store: Optional[CacheStore] = None,
            config: Optional[SyncConfig] = None,
            clock: Optional[Callable[[], datetime]] = None,
    ):
        self._transport = transport
        self._auth = auth
        self.store = store or CacheStore()
        self._config = config or get_sync_config()
        self._clock = clock or utc_now
        self._placeholder_ids = itertools.count(-1, -1)
        self._pending: Dict[str, PendingMutation] = {}

        retry_config = self._config.retry
        if retry_config.retry_condition is None:
            retry_config = retry_config.model_copy(update={"retry_condition": is_transport_error})
        self._retry_config = retry_config

    # =========================================================================
    # Reads
    # =========================================================================

    def messages(self, group_id: int) -> Optional[CachedConnection]:
        return self.store.get(messages_key(group_id))

    def groups(self) -> Optional[patches.GroupList]:
        return self.store.get(groups_key(self._auth.require_user_id()))

    def pending(self, correlation_token: str) -> Optional[PendingMutation]:
        return self._pending.get(correlation_token)

    # =========================================================================
    # Optimistic createMessage
    # =========================================================================

    async def dispatch_create_message(self, group_id: int, text: str) -> PendingMutation:
        """
        Insert a PENDING edge and start the mutation in the background.
        Returns once the placeholder is in the cache; never waits on the network.
        """
        user_id = self._auth.require_user_id()
        correlation_token = uuid.uuid4().hex
        placeholder = patches.build_optimistic_edge(
            placeholder_id=next(self._placeholder_ids),
            group_id=group_id,
            user_id=user_id,
            text=text,
            created_at=self._clock(),
            correlation_token=correlation_token,
        )

        await self.store.patch(
            messages_key(group_id),
            lambda conn: patches.insert_optimistic_edge(conn, placeholder),
        )

        pending = PendingMutation(correlation_token, group_id, placeholder)
        self._pending[correlation_token] = pending
        pending._task = asyncio.create_task(self._complete_create_message(pending, text))
        pending._task.add_done_callback(_retrieve_task_error)
        log.debug(f"[RECONCILE] Dispatched placeholder {placeholder.node.id} to group {group_id}")
        return pending

    async def _complete_create_message(self, pending: PendingMutation, text: str) -> CachedEdge:
        key = messages_key(pending.group_id)
        token = pending.correlation_token

        try:
            result = await retry_async(
                self._attempt_create_message,
                pending.group_id,
                text,
                token,
                retry_config=self._retry_config,
                context=f"createMessage(group={pending.group_id})",
            )
        except Exception as e:
            await self.store.patch(key, lambda conn: patches.remove_edge(conn, token))
            pending.status = EdgeStatus.FAILED
            pending.error = e
            self._pending.pop(token, None)
            log.warning(f"[RECONCILE] Rolled back placeholder {pending.placeholder_id}: {e!r}")
            raise ConflictError(
                f"createMessage to group {pending.group_id} was rejected",
                details={"correlation_token": token, "cause": getattr(e, "code", type(e).__name__)},
            ) from e

        edge = MessageEdge(cursor=result.cursor, node=result.message)
        await self.store.patch(key, lambda conn: patches.confirm_edge(conn, edge, token))
        pending.status = EdgeStatus.CONFIRMED
        self._pending.pop(token, None)
        log.debug(f"[RECONCILE] Confirmed placeholder {pending.placeholder_id} as message {result.message.id}")
        return CachedEdge.confirmed(edge, token)

    async def _attempt_create_message(self, group_id: int, text: str, correlation_token: str):
        return await asyncio.wait_for(
            self._transport.create_message(group_id, text, correlation_token),
            timeout=self._config.mutation_timeout_seconds,
        )

    # =========================================================================
    # Pagination
    # =========================================================================

    async def load_messages(self, group_id: int, first: Optional[int] = None) -> CachedConnection:
        """Fetch the newest page and merge it into the cache."""
        page = await self._transport.fetch_messages(group_id, first=first)
        return await self.store.patch(
            messages_key(group_id),
            lambda conn: patches.merge_page(conn, page, window_seconds=self._config.dedupe_window_seconds),
        )

    async def load_more(self, group_id: int, count: Optional[int] = None) -> CachedConnection:
        """Fetch the page after the oldest confirmed edge and merge it."""
        connection = self.messages(group_id)
        if connection is None or not connection.loaded:
            return await self.load_messages(group_id, first=count)
        if not connection.has_next_page:
            return connection

        page = await self._transport.fetch_messages(group_id, first=count, after=connection.end_cursor)
        return await self.store.patch(
            messages_key(group_id),
            lambda conn: patches.merge_page(
                conn, page, older=True, window_seconds=self._config.dedupe_window_seconds,
            ),
        )

    # =========================================================================
    # Push events
    # =========================================================================

    async def handle_event(self, event: Dict[str, Any]) -> None:
        """Apply a pushed subscription payload."""
        event_type = event.get("event_type")
        if event_type == MessageAdded.model_fields["event_type"].default:
            await self._apply_message_added(MessageAdded.model_validate(event))
        elif event_type == GroupAdded.model_fields["event_type"].default:
            await self._apply_group_added(GroupAdded.model_validate(event))
        else:
            log.debug(f"Ignoring push event of type {event_type}")

    async def _apply_message_added(self, event: MessageAdded) -> None:
        edge = MessageEdge(cursor=event.cursor, node=event.message)
        await self.store.patch(
            messages_key(event.group_id),
            lambda conn: patches.upsert_pushed_edge(
                conn, edge, event.correlation_token, self._config.dedupe_window_seconds,
            ),
        )

    async def _apply_group_added(self, event: GroupAdded) -> None:
        if event.user_id != self._auth.user_id:
            return
        await self.store.patch(groups_key(event.user_id), lambda groups: patches.add_group(groups, event.group))

    # =========================================================================
    # Groups
    # =========================================================================

    async def load_groups(self) -> patches.GroupList:
        user_id = self._auth.require_user_id()
        user = await self._transport.get_user(user_id)
        return await self.store.patch(groups_key(user_id), lambda current: patches.replace_groups(current, user.groups))

    async def create_group(self, name: str, user_ids: Iterable[int]) -> GroupView:
        user_id = self._auth.require_user_id()
        view = await self._transport.create_group(name, list(user_ids))
        group = GroupReadModel(id=view.id, name=view.name)
        await self.store.patch(groups_key(user_id), lambda groups: patches.add_group(groups, group))
        return view

    async def update_group(self, group_id: int, name: Optional[str] = None) -> GroupReadModel:
        user_id = self._auth.require_user_id()
        group = await self._transport.update_group(group_id, name)
        await self.store.patch(groups_key(user_id), lambda groups: patches.add_group(groups, group))
        return group

    async def leave_group(self, group_id: int) -> None:
        user_id = self._auth.require_user_id()
        await self._transport.leave_group(group_id)
        await self._forget_group(user_id, group_id)

    async def delete_group(self, group_id: int) -> GroupReadModel:
        user_id = self._auth.require_user_id()
        group = await self._transport.delete_group(group_id)
        await self._forget_group(user_id, group_id)
        return group

    async def _forget_group(self, user_id: int, group_id: int) -> None:
        await self.store.patch(groups_key(user_id), lambda groups: patches.remove_group(groups, group_id))
        await self.store.evict(messages_key(group_id))

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def drain(self) -> List[PendingMutation]:
        """Wait for every in-flight mutation to settle; returns them."""
        in_flight = list(self._pending.values())
        await asyncio.gather(*(p._task for p in in_flight), return_exceptions=True)
        return in_flight
