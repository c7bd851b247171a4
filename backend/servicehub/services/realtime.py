"""
Realtime notifier.

Tracks connected WebSockets in named rooms (``user_<id>`` per connected user,
``booking_<id>`` for clients following a booking) and fans events out to
them. Delivery is best effort: no ordering across rooms, no acknowledgement
and no replay for clients that connect later.

Wire format, both directions: ``{"event": "<name>", "data": <payload>}``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


def booking_room(booking_id: Any) -> str:
    return f"booking_{booking_id}"


class RealtimeNotifier:
    def __init__(self) -> None:
        self._rooms: dict[str, set["WebSocket"]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def join(self, room: str, websocket: "WebSocket") -> None:
        async with self._lock:
            self._rooms[room].add(websocket)

    async def leave_all(self, websocket: "WebSocket") -> None:
        async with self._lock:
            for room in list(self._rooms):
                members = self._rooms[room]
                members.discard(websocket)
                if not members:
                    del self._rooms[room]

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def send(self, websocket: "WebSocket", event: str, data: Any) -> None:
        await websocket.send_json({"event": event, "data": data})

    async def emit(
        self,
        room: str,
        event: str,
        data: Any,
        *,
        skip: Optional["WebSocket"] = None,
    ) -> int:
        """Send ``event`` to every socket in ``room`` except ``skip``.

        Sockets that fail to receive are dropped from all rooms. Returns the
        number of sockets the event was handed to.
        """
        async with self._lock:
            targets = [ws for ws in self._rooms.get(room, ()) if ws is not skip]

        delivered = 0
        for websocket in targets:
            try:
                await self.send(websocket, event, data)
                delivered += 1
            except Exception as e:
                logger.warning(f"⚠️ Dropping socket from {room} after failed '{event}' send: {e}")
                await self.leave_all(websocket)
        return delivered


async def notify_best_effort(
    notifier: Optional[RealtimeNotifier],
    room: str,
    event: str,
    data: Any,
) -> None:
    """Emit without ever raising; failures are logged and swallowed."""
    if notifier is None:
        logger.info(f"Realtime notifier not configured; skipped '{event}' for {room}")
        return
    try:
        await notifier.emit(room, event, data)
    except Exception as e:
        logger.warning(f"⚠️ Socket notification failed: {e}")
