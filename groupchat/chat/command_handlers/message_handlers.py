# =============================================================================
# File: groupchat/chat/command_handlers/message_handlers.py
# Description: Command handlers for message operations
# =============================================================================

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from groupchat.chat.commands import CreateMessageCommand
from groupchat.chat.cursor import encode_cursor
from groupchat.chat.read_models import CreateMessageResult
from groupchat.common.base.base_command_handler import BaseCommandHandler
from groupchat.common.exceptions.exceptions import ValidationError
from groupchat.config.chat_config import get_chat_config
from groupchat.infra.cqrs.decorators import command_handler

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies

log = logging.getLogger("groupchat.chat.handlers.message")


@command_handler(CreateMessageCommand)
class CreateMessageHandler(BaseCommandHandler):
    """
    Handle CreateMessageCommand.

    1. Caller must be a member of an existing group
    2. Insert the message with created_at from the handler clock; a replay
       with a correlation token the author already used in this group
       returns the stored message instead
    3. Publish messageAdded on the group topic (failures are only logged);
       replays publish nothing
    4. Return the message, its cursor and the echoed correlation token
    """

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)
        self.max_message_length = (deps.chat_config or get_chat_config()).max_message_length

    async def handle(self, command: CreateMessageCommand) -> CreateMessageResult:
        user, group = await self.require_membership(command.auth, command.group_id)

        if len(command.text) > self.max_message_length:
            raise ValidationError(
                f"Message text exceeds {self.max_message_length} characters",
                details={"max_length": self.max_message_length},
            )

        message, created = await self.persistence.insert_message(
            {
                "text": command.text,
                "created_at": self.now(),
                "user_id": user.id,
                "group_id": group.id,
                "correlation_token": command.correlation_token,
            }
        )

        if not created:
            log.info(
                f"Replayed createMessage [correlation: {command.correlation_token}] "
                f"resolved to message {message.id}"
            )
            return CreateMessageResult(
                message=message,
                cursor=encode_cursor(message),
                correlation_token=command.correlation_token,
            )

        log.info(
            f"Message {message.id} created in group {group.id} by user {user.id}"
            + (f" [correlation: {command.correlation_token}]" if command.correlation_token else "")
        )

        await self.dispatcher.message_added(message, correlation_token=command.correlation_token)

        return CreateMessageResult(
            message=message,
            cursor=encode_cursor(message),
            correlation_token=command.correlation_token,
        )
