# =============================================================================
# File: groupchat/security/auth_context.py
# Description: Per-operation authentication context
# =============================================================================

from typing import Optional

from pydantic import BaseModel, ConfigDict

from groupchat.common.exceptions.exceptions import AuthenticationError


class AuthContext(BaseModel):
    """
    The authenticated user for the current operation, or anonymous.

    Built by the token resolver and passed explicitly to every command,
    query and subscription.
    """
    user_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def anonymous(cls) -> 'AuthContext':
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def require_user_id(self) -> int:
        if self.user_id is None:
            raise AuthenticationError("Authentication required")
        return self.user_id
