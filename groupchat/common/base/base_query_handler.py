# groupchat/common/base/base_query_handler.py
"""
Base Query Handler

Provides common infrastructure for all query handlers in groupchat:
- Logging infrastructure
- Authorization helpers (caller resolution, membership guard)
- Abstract handle() method

Queries are READ-ONLY operations: no events, no state changes.
"""

import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, TYPE_CHECKING

from groupchat.chat.guards import load_caller, load_group_for_member
from groupchat.chat.read_models import GroupReadModel, UserReadModel
from groupchat.common.exceptions.exceptions import AuthorizationError
from groupchat.security.auth_context import AuthContext

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies

TQuery = TypeVar('TQuery')
TResult = TypeVar('TResult')


class BaseQueryHandler(ABC, Generic[TQuery, TResult]):
    """
    Base class for all query handlers in groupchat.

    Usage:
        @query_handler(GetGroupQuery)
        class GetGroupQueryHandler(BaseQueryHandler[GetGroupQuery, GroupView]):
            def __init__(self, deps: HandlerDependencies):
                super().__init__(deps)

            async def handle(self, query: GetGroupQuery) -> GroupView:
                _, group = await self.require_membership(query.auth, query.group_id)
                ...
    """

    def __init__(self, deps: 'HandlerDependencies'):
        self.log = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
        self.deps = deps
        self.persistence = deps.persistence

    async def current_user(self, auth: AuthContext) -> UserReadModel:
        return await load_caller(self.persistence, auth)

    async def require_membership(self, auth: AuthContext, group_id: int) -> tuple[UserReadModel, GroupReadModel]:
        user = await self.current_user(auth)
        group = await load_group_for_member(self.persistence, group_id, user.id)
        return user, group

    def validate_self_access(self, resource_user_id: int, requesting_user_id: int) -> None:
        """Users may only read their own record."""
        if resource_user_id != requesting_user_id:
            raise AuthorizationError("Users may only query their own record")

    @abstractmethod
    async def handle(self, query: TQuery) -> TResult:
        pass
