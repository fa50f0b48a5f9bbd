# =============================================================================
# File: groupchat/chat/pagination.py
# Description: Cursor pagination over a group's messages
# =============================================================================
#
# Ordering is (created_at DESC, id DESC). "Forward" walks toward older
# messages starting at the newest; "backward" walks toward newer messages
# starting at the oldest. Edges are always returned newest first.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

from groupchat.chat.cursor import MessageKey, decode_cursor, encode_cursor
from groupchat.chat.enums import PageDirection
from groupchat.chat.read_models import MessageConnection, MessageEdge, MessageReadModel, PageInfo
from groupchat.common.exceptions.exceptions import ValidationError
from groupchat.config.chat_config import ChatConfig, get_chat_config

if TYPE_CHECKING:
    from groupchat.chat.ports.persistence_port import PersistencePort

log = logging.getLogger("groupchat.chat.pagination")


@dataclass(frozen=True)
class PageWindow:
    """Validated pagination request"""
    direction: PageDirection
    size: int
    anchor: Optional[MessageKey] = None


def resolve_page_window(
        first: Optional[int] = None,
        after: Optional[str] = None,
        last: Optional[int] = None,
        before: Optional[str] = None,
        config: Optional[ChatConfig] = None,
) -> PageWindow:
    """
    Validate connection arguments and normalize them into a PageWindow.

    Raises ValidationError for conflicting arguments, non-positive sizes and
    undecodable cursors. Never touches storage.
    """
    config = config or get_chat_config()

    if first is not None and last is not None:
        raise ValidationError("Cannot combine 'first' and 'last'")
    if after is not None and last is not None:
        raise ValidationError("Cannot combine 'after' and 'last'")
    if before is not None and first is not None:
        raise ValidationError("Cannot combine 'before' and 'first'")
    if after is not None and before is not None:
        raise ValidationError("Cannot combine 'after' and 'before'")

    backward = last is not None or before is not None
    requested = last if backward else first

    if requested is not None and requested <= 0:
        raise ValidationError(
            f"Page size must be positive, got {requested}",
            details={"size": requested},
        )

    size = min(requested if requested is not None else config.default_page_size, config.max_page_size)
    cursor = before if backward else after
    anchor = decode_cursor(cursor) if cursor is not None else None

    return PageWindow(
        direction=PageDirection.BACKWARD if backward else PageDirection.FORWARD,
        size=size,
        anchor=anchor,
    )


def build_connection(
        messages: List[MessageReadModel],
        has_next_page: bool,
        has_previous_page: bool,
) -> MessageConnection:
    """Wrap messages (already newest first) into a connection."""
    edges = [MessageEdge(cursor=encode_cursor(m), node=m) for m in messages]
    return MessageConnection(
        edges=edges,
        page_info=PageInfo(
            has_next_page=has_next_page,
            has_previous_page=has_previous_page,
            start_cursor=edges[0].cursor if edges else None,
            end_cursor=edges[-1].cursor if edges else None,
        ),
    )


class PaginationEngine:
    """Computes bounded, cursor-addressed slices of a group's messages."""

    def __init__(self, persistence: 'PersistencePort', config: Optional[ChatConfig] = None):
        self._persistence = persistence
        self._config = config or get_chat_config()

    async def paginate(
            self,
            group_id: int,
            first: Optional[int] = None,
            after: Optional[str] = None,
            last: Optional[int] = None,
            before: Optional[str] = None,
    ) -> MessageConnection:
        window = resolve_page_window(first, after, last, before, self._config)
        return await self.fetch_window(group_id, window)

    async def fetch_window(self, group_id: int, window: PageWindow) -> MessageConnection:
        if window.direction is PageDirection.FORWARD:
            rows = await self._persistence.query_messages(
                group_id, older_than=window.anchor, limit=window.size + 1, newest_first=True,
            )
            has_next = len(rows) > window.size
            rows = rows[:window.size]

            has_previous = False
            if window.anchor is not None:
                newer = await self._persistence.query_messages(
                    group_id, newer_than=window.anchor, limit=1, newest_first=False,
                )
                has_previous = bool(newer)
        else:
            rows = await self._persistence.query_messages(
                group_id, newer_than=window.anchor, limit=window.size + 1, newest_first=False,
            )
            has_previous = len(rows) > window.size
            rows = list(reversed(rows[:window.size]))

            has_next = False
            if window.anchor is not None:
                older = await self._persistence.query_messages(
                    group_id, older_than=window.anchor, limit=1, newest_first=True,
                )
                has_next = bool(older)

        log.debug(
            f"[PAGINATE] group={group_id} direction={window.direction.value} size={window.size} "
            f"returned={len(rows)} next={has_next} previous={has_previous}"
        )
        return build_connection(rows, has_next_page=has_next, has_previous_page=has_previous)
