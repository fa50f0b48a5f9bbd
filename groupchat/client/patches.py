# =============================================================================
# File: groupchat/client/patches.py
# Description: Pure cache transforms for message connections and group lists
# =============================================================================
#
# Every function here takes an immutable snapshot and returns a new one (or
# the same object when nothing changes). Edge order is always
# (createdAt DESC, id DESC), derived from the message key, never from
# list position.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from groupchat.chat.cursor import MessageKey, encode_cursor
from groupchat.chat.enums import EdgeStatus
from groupchat.chat.read_models import GroupReadModel, MessageConnection, MessageEdge, MessageReadModel, PageInfo

log = logging.getLogger("groupchat.client.patches")


class CachedEdge(BaseModel):
    """A cached message edge, optionally still awaiting confirmation"""
    cursor: str
    node: MessageReadModel
    status: EdgeStatus = EdgeStatus.CONFIRMED
    correlation_token: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> MessageKey:
        return MessageKey.of(self.node)

    @property
    def pending(self) -> bool:
        return self.status is EdgeStatus.PENDING

    @classmethod
    def confirmed(cls, edge: MessageEdge, correlation_token: Optional[str] = None) -> CachedEdge:
        return cls(cursor=edge.cursor, node=edge.node, correlation_token=correlation_token)


class CachedConnection(BaseModel):
    """
    Per-group message list; has_next_page refers to older messages.

    `loaded` stays False until a fetched page is merged, so a connection
    that only holds optimistic inserts still knows its history is missing.
    """
    edges: Tuple[CachedEdge, ...] = ()
    has_next_page: bool = False
    loaded: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def end_cursor(self) -> Optional[str]:
        """Cursor of the oldest confirmed edge"""
        for edge in reversed(self.edges):
            if not edge.pending:
                return edge.cursor
        return None

    def find_by_id(self, message_id: int) -> Optional[CachedEdge]:
        return next((e for e in self.edges if e.node.id == message_id), None)

    def find_by_token(self, correlation_token: str) -> Optional[CachedEdge]:
        return next((e for e in self.edges if e.correlation_token == correlation_token), None)


def build_optimistic_edge(
        placeholder_id: int,
        group_id: int,
        user_id: int,
        text: str,
        created_at: datetime,
        correlation_token: str,
) -> CachedEdge:
    node = MessageReadModel(
        id=placeholder_id,
        text=text,
        created_at=created_at,
        user_id=user_id,
        group_id=group_id,
    )
    return CachedEdge(
        cursor=encode_cursor(node),
        node=node,
        status=EdgeStatus.PENDING,
        correlation_token=correlation_token,
    )


def _ordered(edges: Iterable[CachedEdge]) -> Tuple[CachedEdge, ...]:
    return tuple(sorted(edges, key=lambda e: e.key, reverse=True))


def _is_ordered(edges: Tuple[CachedEdge, ...]) -> bool:
    return all(edges[i].key > edges[i + 1].key for i in range(len(edges) - 1))


# =============================================================================
# Message connection transforms
# =============================================================================

def insert_optimistic_edge(connection: Optional[CachedConnection], edge: CachedEdge) -> CachedConnection:
    """Put a pending edge at the head (re-sorting if the local clock lags)."""
    connection = connection or CachedConnection()
    edges = (edge,) + connection.edges
    if not _is_ordered(edges):
        edges = _ordered(edges)
    return connection.model_copy(update={"edges": edges})


def _matches_placeholder(
        pending: CachedEdge,
        message: MessageReadModel,
        window_seconds: Optional[float],
) -> bool:
    node = pending.node
    if (node.group_id, node.user_id, node.text) != (message.group_id, message.user_id, message.text):
        return False
    if window_seconds is None:
        return True
    return abs((message.created_at - node.created_at).total_seconds()) <= window_seconds


def reconcile_edge(
        connection: Optional[CachedConnection],
        edge: MessageEdge,
        correlation_token: Optional[str] = None,
        window_seconds: Optional[float] = None,
) -> Optional[CachedConnection]:
    """
    Fold an authoritative edge into the connection.

    Precedence:
      1. the real id is already cached → drop the edge (and any pending
         placeholder carrying the same correlation token)
      2. a pending edge with the same correlation token → replace in place
      3. a pending edge with the same (group, author, text), created within
         window_seconds when given → replace in place
      4. otherwise insert in key order
    """
    if connection is None:
        return None

    message = edge.node
    edges: List[CachedEdge] = list(connection.edges)

    if connection.find_by_id(message.id) is not None:
        if correlation_token is None:
            return connection
        remaining = tuple(e for e in edges if not (e.pending and e.correlation_token == correlation_token))
        if len(remaining) == len(edges):
            return connection
        log.debug(f"[RECONCILE] Dropped placeholder {correlation_token} for cached message {message.id}")
        return connection.model_copy(update={"edges": remaining})

    index = None
    if correlation_token is not None:
        index = next(
            (i for i, e in enumerate(edges) if e.pending and e.correlation_token == correlation_token),
            None,
        )
    if index is None:
        index = next(
            (i for i, e in enumerate(edges) if e.pending and _matches_placeholder(e, message, window_seconds)),
            None,
        )

    if index is not None:
        placeholder = edges[index]
        edges[index] = CachedEdge.confirmed(edge, placeholder.correlation_token)
        log.debug(f"[RECONCILE] Placeholder {placeholder.node.id} → message {message.id}")
    else:
        edges.append(CachedEdge.confirmed(edge, correlation_token))

    updated = tuple(edges)
    if not _is_ordered(updated):
        updated = _ordered(updated)
    return connection.model_copy(update={"edges": updated})


def confirm_edge(
        connection: Optional[CachedConnection],
        edge: MessageEdge,
        correlation_token: str,
) -> Optional[CachedConnection]:
    """Apply the mutation response for a locally dispatched message."""
    return reconcile_edge(connection, edge, correlation_token)


def upsert_pushed_edge(
        connection: Optional[CachedConnection],
        edge: MessageEdge,
        correlation_token: Optional[str],
        window_seconds: float,
) -> Optional[CachedConnection]:
    """Apply a pushed messageAdded event. Unloaded connections are left alone."""
    return reconcile_edge(connection, edge, correlation_token, window_seconds)


def remove_edge(connection: Optional[CachedConnection], correlation_token: str) -> Optional[CachedConnection]:
    """Roll back the pending edge for correlation_token."""
    if connection is None:
        return None
    edges = tuple(e for e in connection.edges if not (e.pending and e.correlation_token == correlation_token))
    if len(edges) == len(connection.edges):
        return connection
    return connection.model_copy(update={"edges": edges})


def _placeholder_for(
        edges: Iterable[CachedEdge],
        message: MessageReadModel,
        window_seconds: Optional[float],
) -> Optional[CachedEdge]:
    """The pending edge a fetched row stands for: same correlation token, else same content."""
    pending = [e for e in edges if e.pending]
    if message.correlation_token is not None:
        return next((e for e in pending if e.correlation_token == message.correlation_token), None)
    return next((e for e in pending if _matches_placeholder(e, message, window_seconds)), None)


def merge_page(
        connection: Optional[CachedConnection],
        page: MessageConnection,
        older: bool = False,
        window_seconds: Optional[float] = None,
) -> CachedConnection:
    """
    Merge a fetched page by message key.

    Cached edges with the same id are replaced by the fetched ones. A fetched
    row that is the committed form of a pending edge replaces that edge, so
    a page landing before the mutation response never shows the message
    twice. Other pending edges are kept. has_next_page follows the page when
    it extends the tail (older=True) or when no page was merged before.
    """
    if connection is None or not connection.loaded:
        connection = connection or CachedConnection()
        older = True

    merged = {e.node.id: e for e in connection.edges}
    for fetched in page.edges:
        existing = merged.get(fetched.node.id)
        if existing is None:
            existing = _placeholder_for(merged.values(), fetched.node, window_seconds)
            if existing is not None:
                del merged[existing.node.id]
                log.debug(f"[RECONCILE] Fetched message {fetched.node.id} replaces placeholder {existing.node.id}")
        token = existing.correlation_token if existing else None
        merged[fetched.node.id] = CachedEdge.confirmed(fetched, token)

    update = {"edges": _ordered(merged.values()), "loaded": True}
    if older:
        update["has_next_page"] = page.page_info.has_next_page
    return connection.model_copy(update=update)


def connection_as_page(connection: CachedConnection) -> MessageConnection:
    """Render a cached connection in the API response shape."""
    edges = [MessageEdge(cursor=e.cursor, node=e.node) for e in connection.edges]
    return MessageConnection(
        edges=edges,
        page_info=PageInfo(
            has_next_page=connection.has_next_page,
            start_cursor=edges[0].cursor if edges else None,
            end_cursor=edges[-1].cursor if edges else None,
        ),
    )


# =============================================================================
# Group list transforms
# =============================================================================

GroupList = Tuple[GroupReadModel, ...]


def replace_groups(_: Optional[GroupList], groups: Iterable[GroupReadModel]) -> GroupList:
    return tuple(groups)


def add_group(groups: Optional[GroupList], group: GroupReadModel) -> Optional[GroupList]:
    """Add or refresh a group. Unloaded lists stay unloaded."""
    if groups is None:
        return None
    for i, existing in enumerate(groups):
        if existing.id == group.id:
            if existing == group:
                return groups
            return groups[:i] + (group,) + groups[i + 1:]
    return groups + (group,)


def remove_group(groups: Optional[GroupList], group_id: int) -> Optional[GroupList]:
    if groups is None:
        return None
    remaining = tuple(g for g in groups if g.id != group_id)
    return groups if len(remaining) == len(groups) else remaining
