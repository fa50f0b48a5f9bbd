# =============================================================================
# File: groupchat/chat/query_handlers/message_query_handlers.py
# Description: Query handlers for message pages
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING

from groupchat.chat.pagination import resolve_page_window
from groupchat.chat.queries import GetGroupMessagesQuery
from groupchat.chat.read_models import MessageConnection
from groupchat.common.base.base_query_handler import BaseQueryHandler
from groupchat.infra.cqrs.decorators import query_handler

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies


@query_handler(GetGroupMessagesQuery)
class GetGroupMessagesQueryHandler(BaseQueryHandler[GetGroupMessagesQuery, MessageConnection]):
    """
    Page through a group's messages.

    Pagination arguments are validated after the credential check and
    before any storage access.
    """

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)
        self.pagination = deps.pagination

    async def handle(self, query: GetGroupMessagesQuery) -> MessageConnection:
        query.auth.require_user_id()
        window = resolve_page_window(
            first=query.first,
            after=query.after,
            last=query.last,
            before=query.before,
            config=self.deps.chat_config,
        )
        _, group = await self.require_membership(query.auth, query.group_id)
        return await self.pagination.fetch_window(group.id, window)
