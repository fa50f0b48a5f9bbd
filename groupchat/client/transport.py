# =============================================================================
# File: groupchat/client/transport.py
# Description: Request/response transport for the graph API
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from groupchat.chat.read_models import (
    AuthPayload,
    CreateMessageResult,
    GroupReadModel,
    GroupView,
    LeaveGroupResult,
    MessageConnection,
    UserReadModel,
    UserView,
)
from groupchat.common.exceptions.exceptions import exception_from_error_dict

log = logging.getLogger("groupchat.client.transport")


def is_transport_error(exc: Exception) -> bool:
    """Only network-level failures are worth retrying; server errors are final."""
    return isinstance(exc, (httpx.TransportError, asyncio.TimeoutError))


@runtime_checkable
class GraphTransport(Protocol):
    """Request/response cycle for graph queries and mutations"""

    async def create_message(self, group_id: int, text: str, correlation_token: Optional[str] = None) -> CreateMessageResult:
        ...

    async def fetch_messages(
            self,
            group_id: int,
            first: Optional[int] = None,
            after: Optional[str] = None,
            last: Optional[int] = None,
            before: Optional[str] = None,
    ) -> MessageConnection:
        ...

    async def create_group(self, name: str, user_ids: List[int]) -> GroupView:
        ...

    async def update_group(self, group_id: int, name: Optional[str] = None) -> GroupReadModel:
        ...

    async def leave_group(self, group_id: int) -> LeaveGroupResult:
        ...

    async def delete_group(self, group_id: int) -> GroupReadModel:
        ...

    async def get_user(self, user_id: int) -> UserView:
        ...


class HttpGraphTransport:
    """
    GraphTransport over httpx.

    Structured errors in the response envelope are raised as the matching
    GroupChatException subclass; network failures surface as httpx errors.
    """

    def __init__(
            self,
            base_url: str,
            token: Optional[str] = None,
            client: Optional[httpx.AsyncClient] = None,
            timeout: float = 10.0,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self.token = token

    async def __aenter__(self) -> HttpGraphTransport:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # Accounts
    # =========================================================================

    async def signup(self, email: str, password: str, username: Optional[str] = None) -> AuthPayload:
        data = await self._request("POST", "/graph/auth/signup", json={
            "email": email, "password": password, "username": username,
        })
        payload = AuthPayload.model_validate(data)
        self.token = payload.token
        return payload

    async def login(self, email: str, password: str) -> AuthPayload:
        data = await self._request("POST", "/graph/auth/login", json={"email": email, "password": password})
        payload = AuthPayload.model_validate(data)
        self.token = payload.token
        return payload

    async def logout(self) -> None:
        await self._request("POST", "/graph/auth/logout")
        self.token = None

    async def add_friend(self, user_id: int) -> UserReadModel:
        data = await self._request("POST", "/graph/friends", json={"user_id": user_id})
        return UserReadModel.model_validate(data)

    # =========================================================================
    # Graph operations
    # =========================================================================

    async def create_message(self, group_id: int, text: str, correlation_token: Optional[str] = None) -> CreateMessageResult:
        data = await self._request("POST", f"/graph/groups/{group_id}/messages", json={
            "text": text, "correlation_token": correlation_token,
        })
        return CreateMessageResult.model_validate(data)

    async def fetch_messages(
            self,
            group_id: int,
            first: Optional[int] = None,
            after: Optional[str] = None,
            last: Optional[int] = None,
            before: Optional[str] = None,
    ) -> MessageConnection:
        params = {k: v for k, v in {"first": first, "after": after, "last": last, "before": before}.items() if v is not None}
        data = await self._request("GET", f"/graph/groups/{group_id}/messages", params=params)
        return MessageConnection.model_validate(data)

    async def create_group(self, name: str, user_ids: List[int]) -> GroupView:
        data = await self._request("POST", "/graph/groups", json={"name": name, "user_ids": user_ids})
        return GroupView.model_validate(data)

    async def update_group(self, group_id: int, name: Optional[str] = None) -> GroupReadModel:
        data = await self._request("PATCH", f"/graph/groups/{group_id}", json={"name": name})
        return GroupReadModel.model_validate(data)

    async def leave_group(self, group_id: int) -> LeaveGroupResult:
        data = await self._request("POST", f"/graph/groups/{group_id}/leave")
        return LeaveGroupResult.model_validate(data)

    async def delete_group(self, group_id: int) -> GroupReadModel:
        data = await self._request("DELETE", f"/graph/groups/{group_id}")
        return GroupReadModel.model_validate(data)

    async def get_user(self, user_id: int) -> UserView:
        data = await self._request("GET", "/graph/users", params={"id": user_id})
        return UserView.model_validate(data)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = await self._client.request(method, path, headers=headers, **kwargs)

        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise

        errors = body.get("errors") or []
        if errors:
            log.debug(f"{method} {path} failed with {errors[0].get('code')}: {errors[0].get('message')}")
            raise exception_from_error_dict(errors[0])

        response.raise_for_status()
        return body.get("data")
