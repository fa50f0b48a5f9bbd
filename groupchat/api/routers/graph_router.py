# =============================================================================
# File: groupchat/api/routers/graph_router.py
# Description: Group, user, friend and message queries/mutations
# =============================================================================

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from groupchat.api.dependencies import envelope, get_command_bus, get_query_bus
from groupchat.api.models.graph_api_models import (
    AddFriendRequest,
    CreateGroupRequest,
    CreateMessageRequest,
    GraphResponse,
    UpdateGroupRequest,
)
from groupchat.chat.commands import (
    AddFriendCommand,
    CreateGroupCommand,
    CreateMessageCommand,
    DeleteGroupCommand,
    LeaveGroupCommand,
    UpdateGroupCommand,
)
from groupchat.chat.queries import GetGroupMessagesQuery, GetGroupQuery, GetUserQuery
from groupchat.infra.cqrs.command_bus import CommandBus
from groupchat.infra.cqrs.query_bus import QueryBus
from groupchat.security.auth_context import AuthContext
from groupchat.security.jwt_auth import get_auth_context

log = logging.getLogger("groupchat.api.graph")

router = APIRouter(prefix="/graph", tags=["graph"])


# =============================================================================
# Queries
# =============================================================================

@router.get("/groups/{group_id}", response_model=GraphResponse)
async def get_group(
        group_id: int,
        auth: AuthContext = Depends(get_auth_context),
        query_bus: QueryBus = Depends(get_query_bus),
):
    return envelope(await query_bus.query(GetGroupQuery(auth=auth, group_id=group_id)))


@router.get("/users", response_model=GraphResponse)
async def get_user(
        id: Optional[int] = Query(None),
        email: Optional[str] = Query(None),
        auth: AuthContext = Depends(get_auth_context),
        query_bus: QueryBus = Depends(get_query_bus),
):
    return envelope(await query_bus.query(GetUserQuery(auth=auth, user_id=id, email=email)))


@router.get("/groups/{group_id}/messages", response_model=GraphResponse)
async def get_group_messages(
        group_id: int,
        first: Optional[int] = Query(None),
        after: Optional[str] = Query(None),
        last: Optional[int] = Query(None),
        before: Optional[str] = Query(None),
        auth: AuthContext = Depends(get_auth_context),
        query_bus: QueryBus = Depends(get_query_bus),
):
    query = GetGroupMessagesQuery(
        auth=auth, group_id=group_id, first=first, after=after, last=last, before=before,
    )
    return envelope(await query_bus.query(query))


# =============================================================================
# Mutations
# =============================================================================

@router.post("/groups/{group_id}/messages", response_model=GraphResponse)
async def create_message(
        group_id: int,
        request: CreateMessageRequest,
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    command = CreateMessageCommand(
        auth=auth,
        group_id=group_id,
        text=request.text,
        correlation_token=request.correlation_token,
    )
    return envelope(await command_bus.send(command))


@router.post("/groups", response_model=GraphResponse)
async def create_group(
        request: CreateGroupRequest,
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    command = CreateGroupCommand(auth=auth, name=request.name, user_ids=request.user_ids)
    return envelope(await command_bus.send(command))


@router.patch("/groups/{group_id}", response_model=GraphResponse)
async def update_group(
        group_id: int,
        request: UpdateGroupRequest,
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    command = UpdateGroupCommand(auth=auth, group_id=group_id, name=request.name)
    return envelope(await command_bus.send(command))


@router.post("/groups/{group_id}/leave", response_model=GraphResponse)
async def leave_group(
        group_id: int,
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    return envelope(await command_bus.send(LeaveGroupCommand(auth=auth, group_id=group_id)))


@router.delete("/groups/{group_id}", response_model=GraphResponse)
async def delete_group(
        group_id: int,
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    return envelope(await command_bus.send(DeleteGroupCommand(auth=auth, group_id=group_id)))


@router.post("/friends", response_model=GraphResponse)
async def add_friend(
        request: AddFriendRequest,
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    return envelope(await command_bus.send(AddFriendCommand(auth=auth, user_id=request.user_id)))
