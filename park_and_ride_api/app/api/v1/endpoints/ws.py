"""
WebSocket endpoint for real-time events.

Clients connect to ``/api/v1/ws?token=<access token>``.  The token is
checked exactly like the ``Authorization`` header on REST routes; the
connection is closed with code 1008 when it is missing or invalid.
Once accepted, the socket joins its user's room and receives frames
of the form ``{"event": ..., "data": ...}``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from park_and_ride_api.app.core.security import decode_access_token, resolve_user
from park_and_ride_api.app.services.socket_service import SocketService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)) -> None:
    payload = decode_access_token(token) if token else None
    user = resolve_user(payload) if payload else None
    if not user:
        logger.info("Rejected socket connection with invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await SocketService.connect(websocket, user["user_id"])
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                # Non-JSON text frames are ignored.
                continue
            await SocketService.handle_client_message(message)
    except WebSocketDisconnect:
        logger.info("User %s disconnected", user["user_id"])
    finally:
        SocketService.disconnect(websocket)
