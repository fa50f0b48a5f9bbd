# =============================================================================
# File: groupchat/chat/guards.py
# Description: Authentication and membership checks shared by handlers
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING

from groupchat.chat.enums import EntityKind
from groupchat.chat.exceptions import GroupNotFoundError, NotGroupMemberError
from groupchat.chat.read_models import GroupReadModel, UserReadModel
from groupchat.common.exceptions.exceptions import AuthenticationError
from groupchat.security.auth_context import AuthContext

if TYPE_CHECKING:
    from groupchat.chat.ports.persistence_port import PersistencePort


async def load_caller(persistence: 'PersistencePort', auth: AuthContext) -> UserReadModel:
    """The authenticated user, or AuthenticationError."""
    user_id = auth.require_user_id()
    user = await persistence.find_by_id(EntityKind.USER, user_id)
    if user is None:
        raise AuthenticationError("Authenticated user no longer exists")
    return user


async def load_group_for_member(
        persistence: 'PersistencePort',
        group_id: int,
        user_id: int,
) -> GroupReadModel:
    """
    The group, provided the user is a member.

    Raises GroupNotFoundError for a missing (or deleted) group and
    NotGroupMemberError when no membership edge exists.
    """
    group = await persistence.find_by_id(EntityKind.GROUP, group_id)
    if group is None:
        raise GroupNotFoundError(group_id)
    if not await persistence.is_member(group_id, user_id):
        raise NotGroupMemberError(group_id, user_id)
    return group
