# =============================================================================
# File: groupchat/api/routers/auth_router.py
# Description: Signup, login and logout endpoints
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from groupchat.api.dependencies import envelope, get_command_bus
from groupchat.api.models.graph_api_models import GraphResponse, LoginRequest, SignupRequest
from groupchat.chat.commands import LoginCommand, LogoutCommand, SignupCommand
from groupchat.infra.cqrs.command_bus import CommandBus
from groupchat.security.auth_context import AuthContext
from groupchat.security.jwt_auth import get_auth_context

log = logging.getLogger("groupchat.api.auth")

router = APIRouter(prefix="/graph/auth", tags=["auth"])


@router.post("/signup", response_model=GraphResponse)
async def signup(request: SignupRequest, command_bus: CommandBus = Depends(get_command_bus)):
    command = SignupCommand(email=request.email, password=request.password, username=request.username)
    return envelope(await command_bus.send(command))


@router.post("/login", response_model=GraphResponse)
async def login(request: LoginRequest, command_bus: CommandBus = Depends(get_command_bus)):
    return envelope(await command_bus.send(LoginCommand(email=request.email, password=request.password)))


@router.post("/logout", response_model=GraphResponse)
async def logout(
        auth: AuthContext = Depends(get_auth_context),
        command_bus: CommandBus = Depends(get_command_bus),
):
    return envelope(await command_bus.send(LogoutCommand(auth=auth)))
