# =============================================================================
# File: groupchat/api/routers/wse_router.py
# Description: WebSocket subscription endpoint
# =============================================================================
#
# Frames (JSON):
#   client → {"type": "connection_init", "token": "..."}   (when no ?token=)
#   server → {"type": "connection_ack"}
#   client → {"type": "subscribe", "subscription": "messageAdded", "group_ids": [..]}
#   client → {"type": "subscribe", "subscription": "groupAdded", "user_id": ..}
#   server → {"type": "subscribed", "id": ..} | {"type": "error", "error": {..}}
#   server → {"type": "event", "id": .., "subscription": .., "payload": {..}}
#   client → {"type": "unsubscribe", "id": ..}
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError
from starlette.status import WS_1008_POLICY_VIOLATION

from groupchat.api.models.graph_api_models import SubscribeFrame
from groupchat.common.exceptions.exceptions import GroupChatException, ValidationError
from groupchat.security.jwt_auth import get_ws_token
from groupchat.wse.subscriptions import SubscriptionSession

log = logging.getLogger("groupchat.api.wse")

router = APIRouter(tags=["subscriptions"])


def _parse_frame(raw: str) -> dict:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid JSON frame", details={"error": str(e)})
    if not isinstance(frame, dict):
        raise ValidationError("Frame must be a JSON object")
    return frame


@router.websocket("/graph/subscriptions")
async def subscriptions_endpoint(websocket: WebSocket, token: Optional[str] = Depends(get_ws_token)):
    await websocket.accept()

    deps = websocket.app.state.handler_deps
    bus = websocket.app.state.pubsub_bus

    try:
        if not token:
            frame = _parse_frame(await websocket.receive_text())
            if frame.get("type") == "connection_init":
                token = frame.get("token")
        auth = await deps.token_manager.resolve(token, deps.persistence)
    except GroupChatException as e:
        log.warning(f"WebSocket authentication failed: {e.message}")
        await websocket.send_json({"type": "error", "error": e.to_error_dict()})
        await websocket.close(code=WS_1008_POLICY_VIOLATION)
        return
    except WebSocketDisconnect:
        return

    await websocket.send_json({"type": "connection_ack"})
    session = SubscriptionSession(bus, deps.persistence, auth, websocket.send_json)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = _parse_frame(raw)
                frame_type = frame.get("type")
                if frame_type == "subscribe":
                    request = SubscribeFrame.model_validate(frame)
                    subscription_id = await session.subscribe(
                        request.subscription, group_ids=request.group_ids, user_id=request.user_id,
                    )
                    await websocket.send_json({"type": "subscribed", "id": subscription_id})
                elif frame_type == "unsubscribe":
                    await session.unsubscribe(frame.get("id", ""))
                    await websocket.send_json({"type": "unsubscribed", "id": frame.get("id")})
                else:
                    raise ValidationError(f"Unknown frame type: {frame_type}")
            except PydanticValidationError as e:
                await websocket.send_json({
                    "type": "error",
                    "error": ValidationError("Invalid subscribe frame", details={"errors": e.errors()}).to_error_dict(),
                })
            except GroupChatException as e:
                await websocket.send_json({"type": "error", "error": e.to_error_dict()})
    except WebSocketDisconnect:
        log.debug(f"WebSocket closed for user {auth.user_id}")
    finally:
        await session.close()
