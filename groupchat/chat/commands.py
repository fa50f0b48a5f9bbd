# =============================================================================
# File: groupchat/chat/commands.py
# Description: Chat and account commands
# =============================================================================

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator

from groupchat.infra.cqrs.command_bus import Command
from groupchat.security.auth_context import AuthContext


# =============================================================================
# Message Commands
# =============================================================================

class CreateMessageCommand(Command):
    """Post a message to a group"""
    auth: AuthContext
    group_id: int
    text: str = Field(..., min_length=1)
    correlation_token: Optional[str] = Field(None, max_length=128)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be blank")
        return v


# =============================================================================
# Group Lifecycle Commands
# =============================================================================

class CreateGroupCommand(Command):
    """Create a group with the caller and some of the caller's friends"""
    auth: AuthContext
    name: str = Field(..., min_length=1, max_length=255)
    user_ids: List[int] = Field(default_factory=list)


class UpdateGroupCommand(Command):
    """Rename a group"""
    auth: AuthContext
    group_id: int
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class LeaveGroupCommand(Command):
    """Remove the caller from a group"""
    auth: AuthContext
    group_id: int


class DeleteGroupCommand(Command):
    """Delete a group with its memberships and messages"""
    auth: AuthContext
    group_id: int


# =============================================================================
# Account Commands
# =============================================================================

class SignupCommand(Command):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    username: Optional[str] = Field(None, max_length=255)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if '@' not in v:
            raise ValueError("email must contain '@'")
        return v


class LoginCommand(Command):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LogoutCommand(Command):
    """Invalidate every outstanding token of the caller"""
    auth: AuthContext


class AddFriendCommand(Command):
    """Befriend another user (symmetric)"""
    auth: AuthContext
    user_id: int
