# =============================================================================
# File: groupchat/chat/exceptions.py
# Description: Chat domain exceptions
# =============================================================================

from groupchat.common.exceptions.exceptions import (
    AuthorizationError,
    ResourceNotFoundError,
    ValidationError,
)


class GroupNotFoundError(ResourceNotFoundError):
    """Group not found (never existed or already deleted)"""
    def __init__(self, group_id: int):
        super().__init__(f"Group not found: {group_id}", details={"group_id": group_id})
        self.group_id = group_id


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""
    def __init__(self, user_ref):
        super().__init__(f"User not found: {user_ref}")
        self.user_ref = user_ref


class NotGroupMemberError(AuthorizationError):
    """Caller is not a member of the group"""
    def __init__(self, group_id: int, user_id: int):
        super().__init__(
            f"User {user_id} is not a member of group {group_id}",
            details={"group_id": group_id},
        )
        self.group_id = group_id
        self.user_id = user_id


class NotFriendsError(ValidationError):
    """Some requested members are not friends of the caller"""
    def __init__(self, user_ids):
        ids = sorted(user_ids)
        super().__init__(
            f"Users are not friends of the caller: {ids}",
            details={"user_ids": ids},
        )
        self.user_ids = ids


class InvalidCursorError(ValidationError):
    """Cursor token could not be decoded"""
    def __init__(self, cursor: str):
        super().__init__("Invalid cursor", details={"cursor": cursor})
        self.cursor = cursor


class EmailAlreadyTakenError(ValidationError):
    """Signup with an email that is already registered"""
    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email
