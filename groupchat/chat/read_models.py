# =============================================================================
# File: groupchat/chat/read_models.py
# Description: Chat domain read models (users, groups, messages, connections)
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserReadModel(BaseModel):
    """Stored user record"""
    id: int
    email: str
    username: str
    password_hash: Optional[str] = Field(default=None, exclude=True)
    token_version: int = Field(default=0, exclude=True)

    model_config = ConfigDict(from_attributes=True, frozen=True)


class GroupReadModel(BaseModel):
    """Stored group record"""
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True, frozen=True)


class MessageReadModel(BaseModel):
    """
    Stored message record.

    `user_id` is the author (`from`), `group_id` the owning group (`to`).
    `correlation_token` is the author's client token, unique per
    (user_id, group_id) when present, so replayed createMessage calls and
    fetched pages can be matched to the author's optimistic edge.
    """
    id: int
    text: str
    created_at: datetime
    user_id: int
    group_id: int
    correlation_token: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


# =============================================================================
# Connection shapes
# =============================================================================

class MessageEdge(BaseModel):
    """A message paired with its cursor"""
    cursor: str
    node: MessageReadModel

    model_config = ConfigDict(frozen=True)


class PageInfo(BaseModel):
    has_next_page: bool = False
    has_previous_page: bool = False
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class MessageConnection(BaseModel):
    """Edges ordered by (createdAt DESC, id DESC) plus page flags"""
    edges: List[MessageEdge] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)

    model_config = ConfigDict(frozen=True)


# =============================================================================
# Composite views
# =============================================================================

class GroupView(BaseModel):
    """Group with its member list"""
    id: int
    name: str
    users: List[UserReadModel] = Field(default_factory=list)


class UserView(BaseModel):
    """User with groups and friends"""
    id: int
    email: str
    username: str
    groups: List[GroupReadModel] = Field(default_factory=list)
    friends: List[UserReadModel] = Field(default_factory=list)


class AuthPayload(BaseModel):
    """Result of signup/login"""
    user: UserReadModel
    token: str


# =============================================================================
# Mutation results
# =============================================================================

class CreateMessageResult(BaseModel):
    """Created message with its cursor and the echoed client correlation token"""
    message: MessageReadModel
    cursor: str
    correlation_token: Optional[str] = None


class LeaveGroupResult(BaseModel):
    id: int
