# =============================================================================
# File: groupchat/chat/enums.py
# Description: Chat domain enumerations
# =============================================================================

from enum import Enum


class EntityKind(str, Enum):
    """Entity families served by the persistence port"""
    USER = "user"
    GROUP = "group"
    MESSAGE = "message"


class PageDirection(str, Enum):
    """Pagination direction relative to (createdAt DESC, id DESC)"""
    FORWARD = "forward"
    BACKWARD = "backward"


class EdgeStatus(str, Enum):
    """Lifecycle of a locally originated message in the client cache"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
