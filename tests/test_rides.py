from datetime import datetime

import pytest

from park_and_ride_api.app.services import ride_service
from park_and_ride_api.app.services.ride_service import calculate_fare


@pytest.fixture(autouse=True)
def fixed_distance(monkeypatch):
    monkeypatch.setattr(ride_service, "estimate_distance_km", lambda pickup, drop: 4.0)


def _book(client, account, type_="cab", pickup="Central Station", drop="Museum", when="2024-05-01T12:00:00"):
    return client.post(
        "/api/v1/rides/book",
        json={"type": type_, "pickup_location": pickup, "drop_location": drop, "scheduled_time": when},
        headers=account["headers"],
    )


def test_calculate_fare():
    noon = datetime(2024, 5, 1, 12, 0)
    assert calculate_fare("cab", 4.0, noon) == 60
    assert calculate_fare("shuttle", 2.5, noon) == 20
    assert calculate_fare("cab", 4.0, noon.replace(hour=8)) == 78
    assert calculate_fare("e-rickshaw", 3.0, noon.replace(hour=18)) == 20


def test_list_ride_types(client):
    response = client.get("/api/v1/rides/types")
    assert response.status_code == 200
    assert {t["type"]: t["base_price"] for t in response.json()} == {"cab": 15, "shuttle": 8, "e-rickshaw": 5}


def test_book_ride(client, user):
    response = _book(client, user)
    assert response.status_code == 201
    body = response.json()
    assert body["ride"]["status"] == "pending"
    assert body["ride"]["fare"] == 60
    assert body["ride"]["distance_km"] == 4.0
    assert body["payment"]["amount"] == 60
    assert body["estimated_time"] == 12

    status = client.get(f"/api/v1/payments/{body['payment']['id']}/status", headers=user["headers"])
    assert status.json()["status"] == "pending"


def test_book_ride_validation(client, user):
    assert _book(client, user, type_="helicopter").status_code == 422
    assert _book(client, user, pickup="   ").status_code == 422


def test_my_rides(client, user, other_user):
    _book(client, user)
    _book(client, user, type_="shuttle")
    _book(client, other_user)
    rides = client.get("/api/v1/rides/my-rides", headers=user["headers"]).json()
    assert [r["type"] for r in rides] == ["shuttle", "cab"]


def test_cancel_ride_fails_payment(client, user):
    booked = _book(client, user).json()
    response = client.put(f"/api/v1/rides/{booked['ride']['id']}/cancel", headers=user["headers"])
    assert response.status_code == 200
    assert response.json()["ride"]["status"] == "cancelled"
    status = client.get(f"/api/v1/payments/{booked['payment']['id']}/status", headers=user["headers"])
    assert status.json()["status"] == "failed"

    again = client.put(f"/api/v1/rides/{booked['ride']['id']}/cancel", headers=user["headers"])
    assert again.status_code == 400


def test_cancel_foreign_ride(client, user, other_user):
    booked = _book(client, user).json()
    response = client.put(f"/api/v1/rides/{booked['ride']['id']}/cancel", headers=other_user["headers"])
    assert response.status_code == 404


def test_complete_ride(client, user, admin):
    booked = _book(client, user).json()
    url = f"/api/v1/rides/{booked['ride']['id']}/status"
    assert client.put(url, json={"status": "completed"}, headers=user["headers"]).status_code == 403

    assert client.put(url, json={"status": "ongoing"}, headers=admin["headers"]).status_code == 200
    response = client.put(url, json={"status": "completed"}, headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["ride"]["status"] == "completed"

    status = client.get(f"/api/v1/payments/{booked['payment']['id']}/status", headers=user["headers"])
    assert status.json()["status"] == "completed"
    assert client.get("/api/v1/users/analytics", headers=user["headers"]).json()["total_rides"] == 1

    # Completing twice does not count the ride twice.
    client.put(url, json={"status": "completed"}, headers=admin["headers"])
    assert client.get("/api/v1/users/analytics", headers=user["headers"]).json()["total_rides"] == 1


def test_update_status_unknown_ride(client, admin):
    response = client.put("/api/v1/rides/999/status", json={"status": "ongoing"}, headers=admin["headers"])
    assert response.status_code == 404


def test_pool_options(client, user, other_user):
    shared = _book(client, other_user, type_="shuttle", pickup="Central Station North").json()
    _book(client, other_user, type_="cab", pickup="Central Station")
    _book(client, other_user, type_="shuttle", pickup="Airport")

    response = client.post(
        "/api/v1/rides/pool",
        json={"pickup_location": "central station", "drop_location": "Museum"},
        headers=user["headers"],
    )
    assert response.status_code == 200
    options = response.json()
    assert [o["ride_id"] for o in options] == [shared["ride"]["id"]]
    assert options[0]["shared_fare"] == round(shared["ride"]["fare"] * 0.7)


def test_ride_analytics(client, user, admin):
    first = _book(client, user).json()
    _book(client, user, type_="shuttle")
    client.put(f"/api/v1/rides/{first['ride']['id']}/status", json={"status": "completed"}, headers=admin["headers"])

    analytics = client.get("/api/v1/rides/analytics", headers=user["headers"]).json()
    assert analytics["total_rides"] == 2
    assert analytics["completed_rides"] == 1
    assert analytics["total_spent"] == 60
    assert analytics["average_fare"] == 60
    assert analytics["ride_types"] == [{"type": "cab", "count": 1}, {"type": "shuttle", "count": 1}]


def test_cancelled_ride_cannot_be_completed(client, user, admin):
    booked = _book(client, user).json()
    client.put(f"/api/v1/rides/{booked['ride']['id']}/cancel", headers=user["headers"])
    response = client.put(
        f"/api/v1/rides/{booked['ride']['id']}/status", json={"status": "completed"}, headers=admin["headers"]
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot complete a cancelled ride"
    assert client.get("/api/v1/users/analytics", headers=user["headers"]).json()["total_rides"] == 0
    status = client.get(f"/api/v1/payments/{booked['payment']['id']}/status", headers=user["headers"])
    assert status.json()["status"] == "failed"
