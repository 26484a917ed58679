"""
Real-time Room Broadcasting

WebSocket connections are grouped into named rooms:

    role:<ROLE>     joined on connect by authenticated users
    user:<id>       joined on connect by authenticated users
    kitchen, pos    joined on request by kitchen displays and POS terminals

Every frame sent to a client is ``{"event": <name>, "data": <payload>}``.
Delivery is fire-and-forget: a socket that fails to receive a frame is
dropped from every room and nothing is retried.
"""

import logging
from typing import Any, Optional

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

KITCHEN_ROOM = "kitchen"
POS_ROOM = "pos"

# Client event name -> room it joins
JOINABLE_ROOMS = {
    "join:kitchen": KITCHEN_ROOM,
    "join:pos": POS_ROOM,
}


def role_room(role: str) -> str:
    return f"role:{role}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class ConnectionManager:
    """Tracks open sockets and the rooms they belong to."""

    def __init__(self):
        self.active: set[WebSocket] = set()
        self.rooms: dict[str, set[WebSocket]] = {}

    async def connect(
        self,
        websocket: WebSocket,
        user_id: Optional[str] = None,
        role: Optional[str] = None,
    ) -> None:
        """Accept a socket and join its identity rooms (none for anonymous clients)."""
        await websocket.accept()
        self.active.add(websocket)
        if role:
            self.join(websocket, role_room(role))
        if user_id:
            self.join(websocket, user_room(user_id))
        logger.info(f"WebSocket connected ({role or 'anonymous'}), {len(self.active)} active")

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)
        logger.debug(f"Socket joined room {room}")

    def disconnect(self, websocket: WebSocket) -> None:
        """Forget a socket and remove it from every room."""
        self.active.discard(websocket)
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(websocket)
            if not members:
                del self.rooms[room]

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def _send(self, sockets: set[WebSocket], event: str, data: Any) -> int:
        message = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        for ws in list(sockets):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.debug(f"Dropping socket after failed send of {event}: {e}")
                self.disconnect(ws)
        return delivered

    async def emit(self, room: str, event: str, data: Any) -> int:
        """
        Send an event to every socket in a room.

        Returns:
            Number of sockets the frame was written to
        """
        sockets = self.rooms.get(room)
        if not sockets:
            return 0
        return await self._send(sockets, event, data)

    async def emit_many(self, rooms: list[str], event: str, data: Any) -> int:
        """Send an event once to each socket in any of the rooms."""
        sockets: set[WebSocket] = set()
        for room in rooms:
            sockets |= self.rooms.get(room, set())
        if not sockets:
            return 0
        return await self._send(sockets, event, data)

    async def broadcast(self, event: str, data: Any) -> int:
        """Send an event to every connected socket."""
        if not self.active:
            return 0
        return await self._send(self.active, event, data)


manager = ConnectionManager()
