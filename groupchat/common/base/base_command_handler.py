# =============================================================================
# File: groupchat/common/base/base_command_handler.py
# Description: Base command handler
#              Resolves the caller and guards group membership before a
#              handler mutates anything.
# =============================================================================

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, TYPE_CHECKING

from groupchat.chat.guards import load_caller, load_group_for_member
from groupchat.chat.read_models import GroupReadModel, UserReadModel
from groupchat.security.auth_context import AuthContext

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies

log = logging.getLogger("groupchat.base_handler")


class BaseCommandHandler(ABC):
    """
    Base class for all command handlers in groupchat.

    Provides:
    - Access to the persistence port and event dispatcher
    - Caller resolution (AuthenticationError when absent)
    - Membership guard (NotFound / Unauthorized)
    - The injectable clock used for createdAt
    """

    def __init__(self, deps: 'HandlerDependencies'):
        self.deps = deps
        self.persistence = deps.persistence
        self.dispatcher = deps.dispatcher

    def now(self) -> datetime:
        return self.deps.clock()

    async def current_user(self, auth: AuthContext) -> UserReadModel:
        return await load_caller(self.persistence, auth)

    async def require_membership(self, auth: AuthContext, group_id: int) -> tuple[UserReadModel, GroupReadModel]:
        """Resolve the caller and the group they must belong to."""
        user = await self.current_user(auth)
        group = await load_group_for_member(self.persistence, group_id, user.id)
        return user, group

    @abstractmethod
    async def handle(self, command: Any) -> Any:
        """
        Handle the command. Must be implemented by subclasses.

        Args:
            command: The command to handle

        Returns:
            Command-specific return value
        """
        pass
