# =============================================================================
#  File: groupchat/api/models/graph_api_models.py
#  groupchat API Models - Graph surface
# =============================================================================
#  Request DTOs validated at the boundary and the response envelope
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
#  ENVELOPE
# =============================================================================

class GraphError(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class GraphResponse(BaseModel):
    """{"data": ..., "errors": [...]}"""
    data: Any = None
    errors: List[GraphError] = Field(default_factory=list)


# =============================================================================
#  MUTATION INPUTS
# =============================================================================

class CreateMessageRequest(BaseModel):
    text: str = Field(..., min_length=1)
    correlation_token: Optional[str] = Field(None, max_length=128)

    model_config = ConfigDict(extra='forbid')


class CreateGroupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    user_ids: List[int] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')


class UpdateGroupRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)

    model_config = ConfigDict(extra='forbid')


class AddFriendRequest(BaseModel):
    user_id: int

    model_config = ConfigDict(extra='forbid')


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    username: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    email: str
    password: str


# =============================================================================
#  SUBSCRIPTION FRAMES
# =============================================================================

class SubscribeFrame(BaseModel):
    """Client → server subscription request over the WebSocket"""
    type: str = "subscribe"
    subscription: str  # "messageAdded" or "groupAdded"
    group_ids: List[int] = Field(default_factory=list)
    user_id: Optional[int] = None
