# =============================================================================
# File: groupchat/security/jwt_auth.py - JWT Authentication
# =============================================================================
# Responsibilities:
# - JWT creation and validation (python-jose)
# - Token version claim so logout invalidates outstanding tokens
# - Resolving a credential into an AuthContext
# - FastAPI dependencies for HTTP (Bearer) and WebSocket (?token=)
# =============================================================================

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING

from fastapi import Depends, Query, Request, WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from groupchat.chat.enums import EntityKind
from groupchat.common.exceptions.exceptions import AuthenticationError
from groupchat.config.jwt_config import JWTConfig, get_jwt_config
from groupchat.security.auth_context import AuthContext

if TYPE_CHECKING:
    from groupchat.chat.ports.persistence_port import PersistencePort

log = logging.getLogger("groupchat.security.jwt_auth")

VERSION_CLAIM = "ver"


class JwtTokenManager:
    """
    Encapsulates JWT token creation and validation.
    - create_access_token(): issues a signed JWT carrying the user's token version.
    - decode_token_payload(): verifies signature, expiry and issuer.
    - resolve(): turns a token into an AuthContext against current user state.
    """

    def __init__(self, config: Optional[JWTConfig] = None):
        self._config = config or get_jwt_config()

    def create_access_token(
            self,
            user_id: int,
            token_version: int = 0,
            expires_delta: Optional[timedelta] = None,
    ) -> str:
        now_utc = datetime.now(timezone.utc)
        expire_utc = now_utc + (expires_delta or timedelta(minutes=self._config.access_token_expire_minutes))

        claims: Dict[str, Any] = {
            "sub": str(user_id),
            "exp": expire_utc,
            "iat": now_utc,
            "iss": self._config.issuer,
            "type": "access",
            "jti": secrets.token_urlsafe(16),
            VERSION_CLAIM: token_version,
        }
        return jwt.encode(claims, self._config.get_secret_key(), algorithm=self._config.algorithm)

    def decode_token_payload(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode and validate a JWT string.
        Returns the payload dict if valid, else None.
        """
        if not token:
            return None
        try:
            return jwt.decode(
                token,
                self._config.get_secret_key(),
                algorithms=[self._config.algorithm],
                issuer=self._config.issuer,
            )
        except JWTError as exc:
            preview = token[:20] + "..." if len(token) > 20 else token
            log.info(f"JWT decode error ({type(exc).__name__}): {exc}. Token preview: {preview}")
            return None

    async def resolve(self, token: Optional[str], persistence: 'PersistencePort') -> AuthContext:
        """
        Resolve a credential into an AuthContext.

        Raises AuthenticationError for a missing, malformed, expired or
        revoked (stale version) token, and for a subject that no longer exists.
        """
        if not token:
            raise AuthenticationError("Token missing")

        payload = self.decode_token_payload(token)
        if not payload:
            raise AuthenticationError("Invalid or expired token")

        try:
            user_id = int(payload.get("sub", ""))
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token subject")

        user = await persistence.find_by_id(EntityKind.USER, user_id)
        if user is None:
            log.warning(f"Token valid but user {user_id} does not exist")
            raise AuthenticationError("User account not found")

        if payload.get(VERSION_CLAIM) != user.token_version:
            log.info(f"Rejected revoked token for user {user_id}")
            raise AuthenticationError("Token has been revoked")

        return AuthContext(user_id=user_id)


# =============================================================================
# HTTP Bearer Authentication Dependency
# =============================================================================
security_scheme = HTTPBearer(auto_error=False)


async def get_auth_context(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> AuthContext:
    """
    FastAPI dependency for HTTP endpoints.
    - No credentials → anonymous context (handlers reject it where required).
    - Any presented credential must be valid, else AuthenticationError.
    """
    if credentials is None:
        return AuthContext.anonymous()

    if credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Invalid auth scheme")

    deps = request.app.state.handler_deps
    return await deps.token_manager.resolve(credentials.credentials, deps.persistence)


# =============================================================================
# WebSocket Authentication
# =============================================================================
def extract_ws_token(websocket: WebSocket, token_from_query: Optional[str] = None) -> Optional[str]:
    """?token= query parameter first, then 'Authorization: Bearer <token>'."""
    if token_from_query:
        return token_from_query

    auth = websocket.headers.get("Authorization")
    if auth:
        try:
            scheme, creds = auth.split(maxsplit=1)
            if scheme.lower() == "bearer":
                return creds
        except ValueError:
            log.debug("Malformed WebSocket Authorization header.")
    return None


async def get_ws_token(
        websocket: WebSocket,
        token_from_query: Optional[str] = Query(None, alias="token"),
) -> Optional[str]:
    """FastAPI dependency for WebSocket routes; resolution happens in the route."""
    return extract_ws_token(websocket, token_from_query)
