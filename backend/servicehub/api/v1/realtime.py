"""
Realtime WebSocket endpoint.

Clients connect to ``/ws`` with a bearer token (``?token=`` or an
``Authorization`` header). Once authenticated the socket joins the user's
personal room and may send:

- ``join_booking``  data: booking id
- ``send_message``  data: {receiverId, bookingId?, content, type?}
- ``mark_read``     data: [message ids]

Every frame is JSON ``{"event": ..., "data": ...}``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field, ValidationError

from servicehub.api.deps import resolve_token_user
from servicehub.core.database import AsyncSessionLocal
from servicehub.core.security import parse_bearer_token
from servicehub.models import User
from servicehub.services.db_service import DBService
from servicehub.services.realtime import RealtimeNotifier, booking_room, user_room
from servicehub.services.serializers import message_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_MARK_READ_IDS = 500


class SendMessagePayload(BaseModel):
    receiver_id: int = Field(..., alias="receiverId")
    booking_id: Optional[int] = Field(None, alias="bookingId")
    content: str = Field(..., min_length=1)
    type: str = "TEXT"


def _is_booking_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(value.strip())


async def _authenticate(websocket: WebSocket) -> Optional[User]:
    token = websocket.query_params.get("token") or parse_bearer_token(
        websocket.headers.get("authorization")
    )
    async with AsyncSessionLocal() as session:
        return await resolve_token_user(DBService(session), token)


async def _handle_send_message(
    notifier: RealtimeNotifier,
    websocket: WebSocket,
    user: User,
    data: Any,
) -> None:
    try:
        payload = SendMessagePayload.model_validate(data)
        async with AsyncSessionLocal() as session:
            db_service = DBService(session)
            if not await db_service.get_user(payload.receiver_id):
                raise LookupError(f"Unknown receiver {payload.receiver_id}")
            message = await db_service.create_message({
                "content": payload.content,
                "type": payload.type,
                "sender_id": user.id,
                "receiver_id": payload.receiver_id,
                "booking_id": payload.booking_id,
            })
    except (ValidationError, LookupError) as e:
        logger.info(f"Rejected message from user {user.id}: {e}")
        await notifier.send(websocket, "error", {"message": "Failed to send message"})
        return
    except Exception as e:
        logger.error(f"❌ Error saving message from user {user.id}: {e}")
        await notifier.send(websocket, "error", {"message": "Failed to send message"})
        return

    body = message_to_dict(message)
    await notifier.emit(user_room(payload.receiver_id), "new_message", body, skip=websocket)
    if payload.booking_id:
        await notifier.emit(booking_room(payload.booking_id), "new_booking_message", body, skip=websocket)
    await notifier.send(websocket, "message_sent", body)


async def _handle_mark_read(
    notifier: RealtimeNotifier,
    websocket: WebSocket,
    user: User,
    data: Any,
) -> None:
    if not isinstance(data, list) or len(data) > MAX_MARK_READ_IDS or not all(
        isinstance(item, int) and not isinstance(item, bool) for item in data
    ):
        await notifier.send(websocket, "error", {"message": "Failed to mark messages as read"})
        return

    message_ids: List[int] = data
    try:
        async with AsyncSessionLocal() as session:
            await DBService(session).mark_messages_read(message_ids, user.id)
    except Exception as e:
        logger.error(f"❌ Error marking messages read for user {user.id}: {e}")
        await notifier.send(websocket, "error", {"message": "Failed to mark messages as read"})
        return

    await notifier.send(websocket, "messages_marked_read", message_ids)


async def _dispatch(
    notifier: RealtimeNotifier,
    websocket: WebSocket,
    user: User,
    raw: str,
) -> None:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        await notifier.send(websocket, "error", {"message": "Invalid frame"})
        return
    if not isinstance(frame, dict):
        await notifier.send(websocket, "error", {"message": "Invalid frame"})
        return

    event = frame.get("event")
    data = frame.get("data")

    if event == "join_booking":
        if not _is_booking_id(data):
            await notifier.send(websocket, "error", {"message": "Invalid booking id"})
            return
        await notifier.join(booking_room(data), websocket)
    elif event == "send_message":
        await _handle_send_message(notifier, websocket, user, data)
    elif event == "mark_read":
        await _handle_mark_read(notifier, websocket, user, data)
    else:
        await notifier.send(websocket, "error", {"message": f"Unknown event: {event}"})


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    notifier: Optional[RealtimeNotifier] = getattr(websocket.app.state, "notifier", None)
    if notifier is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    user = await _authenticate(websocket)
    if not user:
        # Closing before accept rejects the handshake
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await notifier.join(user_room(user.id), websocket)
    logger.info(f"🔌 User {user.name} connected")

    try:
        while True:
            raw = await websocket.receive_text()
            await _dispatch(notifier, websocket, user, raw)
    except WebSocketDisconnect:
        logger.info(f"🔌 User {user.name} disconnected")
    finally:
        await notifier.leave_all(websocket)
