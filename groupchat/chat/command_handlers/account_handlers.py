# =============================================================================
# File: groupchat/chat/command_handlers/account_handlers.py
# Description: Signup, login, logout and friendships
# =============================================================================

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from groupchat.chat.commands import AddFriendCommand, SignupCommand, LoginCommand, LogoutCommand
from groupchat.chat.enums import EntityKind
from groupchat.chat.exceptions import EmailAlreadyTakenError, UserNotFoundError
from groupchat.chat.read_models import AuthPayload, UserReadModel
from groupchat.common.base.base_command_handler import BaseCommandHandler
from groupchat.common.exceptions.exceptions import AuthenticationError, ValidationError
from groupchat.infra.cqrs.decorators import command_handler
from groupchat.security.encryption import hash_password, verify_password

if TYPE_CHECKING:
    from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies

log = logging.getLogger("groupchat.chat.handlers.account")


@command_handler(SignupCommand)
class SignupHandler(BaseCommandHandler):

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)
        self.token_manager = deps.token_manager

    async def handle(self, command: SignupCommand) -> AuthPayload:
        if await self.persistence.find_where(EntityKind.USER, email=command.email):
            raise EmailAlreadyTakenError(command.email)

        user = await self.persistence.create(
            EntityKind.USER,
            {
                "email": command.email,
                "username": command.username or command.email.split("@", 1)[0],
                "password_hash": hash_password(command.password),
                "token_version": 0,
            },
        )
        log.info(f"User {user.id} signed up")

        token = self.token_manager.create_access_token(user.id, user.token_version)
        return AuthPayload(user=user, token=token)


@command_handler(LoginCommand)
class LoginHandler(BaseCommandHandler):

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)
        self.token_manager = deps.token_manager

    async def handle(self, command: LoginCommand) -> AuthPayload:
        matches = await self.persistence.find_where(EntityKind.USER, email=command.email)
        user = matches[0] if matches else None

        if user is None or not verify_password(command.password, user.password_hash or ""):
            raise AuthenticationError("Invalid email or password")

        log.info(f"User {user.id} logged in")
        token = self.token_manager.create_access_token(user.id, user.token_version)
        return AuthPayload(user=user, token=token)


@command_handler(LogoutCommand)
class LogoutHandler(BaseCommandHandler):
    """Bump the caller's token version so every issued token stops resolving"""

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, command: LogoutCommand) -> UserReadModel:
        user = await self.current_user(command.auth)
        updated = await self.persistence.update(
            EntityKind.USER, user.id, {"token_version": user.token_version + 1}
        )
        log.info(f"User {user.id} logged out")
        return updated


@command_handler(AddFriendCommand)
class AddFriendHandler(BaseCommandHandler):
    """Create a symmetric friendship; befriending an existing friend is a no-op"""

    def __init__(self, deps: 'HandlerDependencies'):
        super().__init__(deps)

    async def handle(self, command: AddFriendCommand) -> UserReadModel:
        user = await self.current_user(command.auth)
        if command.user_id == user.id:
            raise ValidationError("Cannot befriend yourself")

        friend = await self.persistence.find_by_id(EntityKind.USER, command.user_id)
        if friend is None:
            raise UserNotFoundError(command.user_id)

        await self.persistence.add_friend(user.id, friend.id)
        log.info(f"User {user.id} befriended user {friend.id}")
        return friend
