# =============================================================================
# File: groupchat/chat/command_handlers/group_handlers.py
# Description: Command handlers for group lifecycle operations
# =============================================================================

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from groupchat.chat.commands import (
    CreateGroupCommand,
    UpdateGroupCommand,
    LeaveGroupCommand,
    DeleteGroupCommand,
)
from groupchat.chat.enums import EntityKind
from groupchat.chat.exceptions import GroupNotFoundError, NotFriendsError
from groupchat.chat.read_models import GroupReadModel, GroupView, LeaveGroupResult
from groupchat.common.base.base_command_handler import BaseCommandHandler
from groupchat.infra.cqrs.decorators import command_handler

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies

log = logging.getLogger("groupchat.chat.handlers.group")


@command_handler(CreateGroupCommand)
class CreateGroupHandler(BaseCommandHandler):
    """
    Create a group whose members are the caller plus the requested users.

    Every requested user must be a friend of the caller. Each added member
    (not the caller) receives groupAdded on their personal topic.
    """

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, command: CreateGroupCommand) -> GroupView:
        user = await self.current_user(command.auth)

        requested = set(command.user_ids) - {user.id}
        friend_ids = {friend.id for friend in await self.persistence.get_friends(user.id)}
        strangers = requested - friend_ids
        if strangers:
            raise NotFriendsError(strangers)

        group = await self.persistence.create(EntityKind.GROUP, {"name": command.name})
        added = sorted(requested)
        await self.persistence.add_members(group.id, [user.id, *added])

        log.info(f"Group {group.id} created by user {user.id} with members {added}")

        await self.dispatcher.group_added(group, added)

        members = await self.persistence.get_members(group.id)
        return GroupView(id=group.id, name=group.name, users=members)


@command_handler(UpdateGroupCommand)
class UpdateGroupHandler(BaseCommandHandler):
    """Rename a group; an absent name leaves it unchanged"""

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, command: UpdateGroupCommand) -> GroupReadModel:
        _, group = await self.require_membership(command.auth, command.group_id)

        if command.name is None:
            return group

        updated = await self.persistence.update(EntityKind.GROUP, group.id, {"name": command.name})
        if updated is None:
            raise GroupNotFoundError(group.id)

        log.info(f"Group {group.id} renamed")
        return updated


@command_handler(LeaveGroupCommand)
class LeaveGroupHandler(BaseCommandHandler):
    """
    Remove the caller's membership. When the last member leaves, the
    group's messages and then the group itself are deleted.
    """

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, command: LeaveGroupCommand) -> LeaveGroupResult:
        user, group = await self.require_membership(command.auth, command.group_id)

        remaining = await self.persistence.remove_member(group.id, user.id)
        log.info(f"User {user.id} left group {group.id} ({remaining} members remain)")

        if remaining == 0:
            deleted_messages = await self.persistence.destroy_messages_for_group(group.id)
            await self.persistence.destroy(EntityKind.GROUP, group.id)
            log.info(f"Group {group.id} emptied and deleted with {deleted_messages} messages")

        return LeaveGroupResult(id=group.id)


@command_handler(DeleteGroupCommand)
class DeleteGroupHandler(BaseCommandHandler):
    """Delete memberships, then messages, then the group"""

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, command: DeleteGroupCommand) -> GroupReadModel:
        user, group = await self.require_membership(command.auth, command.group_id)

        removed_members = await self.persistence.remove_all_members(group.id)
        deleted_messages = await self.persistence.destroy_messages_for_group(group.id)
        await self.persistence.destroy(EntityKind.GROUP, group.id)

        log.info(
            f"Group {group.id} deleted by user {user.id} "
            f"({removed_members} memberships, {deleted_messages} messages)"
        )
        return group
