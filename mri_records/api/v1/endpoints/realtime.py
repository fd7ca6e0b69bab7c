"""WebSocket relay for notifications and staff chat."""

import json
from typing import Any

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import AppException
from mri_records.core.permissions import Operation, is_allowed
from mri_records.core.realtime import ConnectionRegistry
from mri_records.dependencies import (
    ConnectionRegistryDep,
    DatabaseSession,
    get_token_user_id,
    load_active_user,
)
from mri_records.schemas.chat import ChatMessageIn
from mri_records.services.chat_service import ChatService

logger = structlog.get_logger(__name__)

router = APIRouter()

CHAT_EVENT = "chat_message"
ERROR_EVENT = "error"


async def handle_frame(
    db: AsyncSession,
    registry: ConnectionRegistry,
    user: dict[str, Any],
    frame: Any,
) -> None:
    """
    Process one inbound frame from a connected user.

    Chat frames are stored and broadcast to every connected user; anything
    else is answered with an ``error`` event to the sender only.
    """
    if not isinstance(frame, dict) or frame.get("type") != CHAT_EVENT:
        await registry.send_to_user(user["id"], ERROR_EVENT, {"message": "Unsupported frame"})
        return

    if not is_allowed(user["role"], Operation.CHAT):
        await registry.send_to_user(user["id"], ERROR_EVENT, {"message": "Chat not permitted"})
        return

    try:
        incoming = ChatMessageIn.model_validate(frame)
    except ValidationError:
        await registry.send_to_user(user["id"], ERROR_EVENT, {"message": "Invalid chat message"})
        return

    message = await ChatService(db).post_message(user, incoming.text)
    await registry.broadcast(CHAT_EVENT, message.model_dump(mode="json"))


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    db: DatabaseSession,
    registry: ConnectionRegistryDep,
    token: str | None = Query(None),
) -> None:
    """
    Authenticated socket for live notifications and chat.

    The access token travels in the ``token`` query parameter; invalid or
    missing tokens close the socket with a policy violation before accept.
    """
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        user = await load_active_user(db, get_token_user_id(token))
    except AppException as e:
        logger.info("websocket_rejected", reason=e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    registry.connect(user["id"], websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                frame = None
            await handle_frame(db, registry, user, frame)
    except WebSocketDisconnect:
        logger.info("websocket_disconnected", user_id=user["id"])
    finally:
        registry.disconnect(user["id"], websocket)
