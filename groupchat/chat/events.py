# =============================================================================
# File: groupchat/chat/events.py
# Description: Chat domain events delivered to subscribers
# =============================================================================

from __future__ import annotations

from typing import Literal, Optional

from groupchat.chat.read_models import GroupReadModel, MessageReadModel
from groupchat.common.base.base_model import BaseEvent


class MessageAdded(BaseEvent):
    """A message was committed to a group"""
    event_type: Literal["messageAdded"] = "messageAdded"
    group_id: int
    message: MessageReadModel
    cursor: str
    correlation_token: Optional[str] = None


class GroupAdded(BaseEvent):
    """A user was added to a newly created group"""
    event_type: Literal["groupAdded"] = "groupAdded"
    user_id: int
    group: GroupReadModel
