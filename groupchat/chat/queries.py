# =============================================================================
# File: groupchat/chat/queries.py
# Description: Chat domain queries
# =============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import model_validator

from groupchat.infra.cqrs.query_bus import Query
from groupchat.security.auth_context import AuthContext


class GetGroupQuery(Query):
    """Group with members; caller must be a member"""
    auth: AuthContext
    group_id: int


class GetUserQuery(Query):
    """User by id or email; only the caller's own record is visible"""
    auth: AuthContext
    user_id: Optional[int] = None
    email: Optional[str] = None

    @model_validator(mode='after')
    def require_one_lookup_key(self) -> 'GetUserQuery':
        if (self.user_id is None) == (self.email is None):
            raise ValueError("exactly one of user_id or email is required")
        return self


class GetGroupMessagesQuery(Query):
    """A page of a group's messages; caller must be a member"""
    auth: AuthContext
    group_id: int
    first: Optional[int] = None
    after: Optional[str] = None
    last: Optional[int] = None
    before: Optional[str] = None
