"""
Real-time event channel over WebSockets.

``SocketService`` keeps the set of open connections and the rooms they
joined.  Every authenticated connection joins ``user-<id>``.  Services
push events with :meth:`SocketService.emit` (all clients) or
:meth:`SocketService.emit_to_room` (one user's devices).  Frames are
JSON objects of the form ``{"event": <name>, "data": <payload>}``.

The registry lives in process memory, so events only reach clients
connected to the same worker.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

# Client event -> event rebroadcast to every connected client.
RELAYED_EVENTS = {
    "location-update": "driver-location-updated",
    "parking-update": "parking-slot-updated",
    "ride-update": "ride-status-updated",
}


def user_room(user_id: int) -> str:
    return f"user-{user_id}"


class SocketService:
    """In-process registry of WebSocket connections and rooms."""

    _connections: Set[WebSocket] = set()
    _rooms: Dict[str, Set[WebSocket]] = defaultdict(set)

    @classmethod
    async def connect(cls, websocket: WebSocket, user_id: int) -> None:
        """Accept ``websocket`` and join the user's personal room."""
        await websocket.accept()
        cls._connections.add(websocket)
        cls._rooms[user_room(user_id)].add(websocket)
        logger.info("User %s connected (%d open sockets)", user_id, len(cls._connections))

    @classmethod
    def disconnect(cls, websocket: WebSocket) -> None:
        cls._connections.discard(websocket)
        for room in list(cls._rooms):
            members = cls._rooms[room]
            members.discard(websocket)
            if not members:
                del cls._rooms[room]

    @classmethod
    def connection_count(cls) -> int:
        return len(cls._connections)

    @classmethod
    async def _send(cls, targets: Set[WebSocket], event: str, data: Any) -> int:
        sent = 0
        frame = {"event": event, "data": data}
        for websocket in list(targets):
            try:
                await websocket.send_json(frame)
                sent += 1
            except (RuntimeError, OSError, WebSocketDisconnect) as exc:
                # The peer went away between the registry lookup and the send.
                logger.warning("Dropping socket after failed send of %s: %s", event, exc)
                cls.disconnect(websocket)
        return sent

    @classmethod
    async def emit(cls, event: str, data: Any) -> int:
        """Broadcast ``event`` to every connected client.

        Returns the number of sockets the frame was delivered to.
        """
        return await cls._send(cls._connections, event, data)

    @classmethod
    async def emit_to_room(cls, room: str, event: str, data: Any) -> int:
        return await cls._send(cls._rooms.get(room, set()), event, data)

    @classmethod
    async def handle_client_message(cls, message: Any) -> bool:
        """Relay a client frame according to ``RELAYED_EVENTS``.

        Frames that are not objects or carry an unknown event are
        ignored.  Returns ``True`` when the frame was relayed.
        """
        if not isinstance(message, dict):
            return False
        target = RELAYED_EVENTS.get(message.get("event"))
        if target is None:
            logger.debug("Ignoring client event %r", message.get("event"))
            return False
        await cls.emit(target, message.get("data"))
        return True

    @classmethod
    def reset(cls) -> None:
        """Forget all connections.  Used by tests and on shutdown."""
        cls._connections.clear()
        cls._rooms.clear()
