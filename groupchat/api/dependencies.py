# =============================================================================
# File: groupchat/api/dependencies.py
# Description: FastAPI dependencies shared by routers
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder

from groupchat.infra.cqrs.command_bus import CommandBus
from groupchat.infra.cqrs.query_bus import QueryBus


async def get_command_bus(request: Request) -> CommandBus:
    """Get command bus from application state"""
    if getattr(request.app.state, 'command_bus', None) is None:
        raise RuntimeError("Command bus not configured")
    return request.app.state.command_bus


async def get_query_bus(request: Request) -> QueryBus:
    """Get query bus from application state"""
    if getattr(request.app.state, 'query_bus', None) is None:
        raise RuntimeError("Query bus not configured")
    return request.app.state.query_bus


def envelope(data: Any) -> dict:
    """Successful graph response"""
    return {"data": jsonable_encoder(data), "errors": []}
