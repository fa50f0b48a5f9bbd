# =============================================================================
# File: groupchat/chat/query_handlers/group_query_handlers.py
# Description: Query handlers for groups and users
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING

from groupchat.chat.enums import EntityKind
from groupchat.chat.exceptions import UserNotFoundError
from groupchat.chat.queries import GetGroupQuery, GetUserQuery
from groupchat.chat.read_models import GroupView, UserView
from groupchat.common.base.base_query_handler import BaseQueryHandler
from groupchat.infra.cqrs.decorators import query_handler

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies


@query_handler(GetGroupQuery)
class GetGroupQueryHandler(BaseQueryHandler[GetGroupQuery, GroupView]):

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, query: GetGroupQuery) -> GroupView:
        _, group = await self.require_membership(query.auth, query.group_id)
        members = await self.persistence.get_members(group.id)
        return GroupView(id=group.id, name=group.name, users=members)


@query_handler(GetUserQuery)
class GetUserQueryHandler(BaseQueryHandler[GetUserQuery, UserView]):
    """Look up a user by id or email. Only the caller's own record is returned."""

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, query: GetUserQuery) -> UserView:
        caller = await self.current_user(query.auth)

        if query.user_id is not None:
            user = await self.persistence.find_by_id(EntityKind.USER, query.user_id)
        else:
            matches = await self.persistence.find_where(EntityKind.USER, email=query.email.strip().lower())
            user = matches[0] if matches else None

        if user is None:
            raise UserNotFoundError(query.user_id if query.user_id is not None else query.email)

        self.validate_self_access(user.id, caller.id)

        return UserView(
            id=user.id,
            email=user.email,
            username=user.username,
            groups=await self.persistence.get_groups_for_user(user.id),
            friends=await self.persistence.get_friends(user.id),
        )
