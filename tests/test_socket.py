from datetime import datetime, timedelta, timezone

import pytest
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from park_and_ride_api.app.core.security import create_access_token
from park_and_ride_api.app.services.socket_service import SocketService, user_room


def test_socket_rejects_missing_or_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/ws") as websocket:
            websocket.receive_json()
    assert excinfo.value.code == 1008

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/v1/ws?token=garbage") as websocket:
            websocket.receive_json()


def test_socket_rejects_token_of_unknown_user(client):
    token = create_access_token({"sub": "42"})
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/api/v1/ws?token={token}") as websocket:
            websocket.receive_json()


def test_client_events_are_relayed_to_everyone(client, user, other_user):
    with client.websocket_connect(f"/api/v1/ws?token={user['token']}") as first:
        with client.websocket_connect(f"/api/v1/ws?token={other_user['token']}") as second:
            first.send_json({"event": "location-update", "data": {"lat": 40.7, "lng": -74.0}})
            assert second.receive_json() == {"event": "driver-location-updated", "data": {"lat": 40.7, "lng": -74.0}}
            assert first.receive_json()["event"] == "driver-location-updated"

            first.send_json({"event": "unknown", "data": 1})
            first.send_json({"event": "ride-update", "data": {"id": 7}})
            assert second.receive_json() == {"event": "ride-status-updated", "data": {"id": 7}}


def test_notifications_are_pushed_to_the_users_room(client, user, other_user):
    with client.websocket_connect(f"/api/v1/ws?token={user['token']}") as websocket:
        assert SocketService.connection_count() == 1
        client.post(
            "/api/v1/payments/methods",
            json={"type": "card", "name": "Visa"},
            headers=user["headers"],
        )
        client.post(
            "/api/v1/auth/register",
            json={"name": "Late Comer", "email": "late@example.com", "password": "secret123"},
        )
        client.put(
            "/api/v1/users/change-password",
            json={"old_password": "secret123", "new_password": "secret456"},
            headers=user["headers"],
        )
        # Only the user's own notifications reach the socket.
        response = client.post(
            "/api/v1/rides/book",
            json={"type": "cab", "pickup_location": "A", "drop_location": "B"},
            headers=user["headers"],
        )
        assert response.status_code == 201
        frames = [websocket.receive_json(), websocket.receive_json()]
    assert {f["event"] for f in frames} == {"new-notification", "ride-status-updated"}
    notification = next(f for f in frames if f["event"] == "new-notification")
    assert notification["data"]["title"] == "Ride Booked"
    assert notification["data"]["user_id"] == user["id"]


def test_slot_updates_are_broadcast(client, admin, user):
    with client.websocket_connect(f"/api/v1/ws?token={user['token']}") as websocket:
        client.post(
            "/api/v1/parking/slots",
            json={"slot_number": "Z-09", "location": "Depot"},
            headers=admin["headers"],
        )
        frame = websocket.receive_json()
    assert frame["event"] == "parking-slot-updated"
    assert frame["data"]["slot_number"] == "Z-09"


def _vanished_socket():
    """A connected socket whose peer is gone: every send fails."""

    async def receive():
        return {"type": "websocket.disconnect", "code": 1006}

    async def send(message):
        raise BrokenPipeError("peer closed the connection")

    websocket = WebSocket({"type": "websocket", "path": "/api/v1/ws", "headers": []}, receive, send)
    websocket.client_state = WebSocketState.CONNECTED
    websocket.application_state = WebSocketState.CONNECTED
    return websocket


def test_dead_socket_does_not_fail_a_reservation(client, user, slot):
    dead = _vanished_socket()
    SocketService._connections.add(dead)
    SocketService._rooms[user_room(user["id"])].add(dead)

    start = datetime.now(timezone.utc) + timedelta(hours=3)
    response = client.post(
        "/api/v1/parking/reserve",
        json={"slot_id": slot["id"], "start_time": start.isoformat(), "end_time": (start + timedelta(hours=1)).isoformat()},
        headers=user["headers"],
    )
    assert response.status_code == 201
    assert response.json()["check_in_code"].startswith("PR-")
    assert SocketService.connection_count() == 0
    assert user_room(user["id"]) not in SocketService._rooms


def test_dead_socket_does_not_fail_a_ride_booking(client, user):
    SocketService._connections.add(_vanished_socket())
    response = client.post(
        "/api/v1/rides/book",
        json={"type": "cab", "pickup_location": "A", "drop_location": "B"},
        headers=user["headers"],
    )
    assert response.status_code == 201
    assert SocketService.connection_count() == 0
