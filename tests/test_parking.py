from datetime import datetime, timedelta, timezone

from park_and_ride_api.app.core.security import make_check_in_code
from park_and_ride_api.app.services.parking_service import reservation_price


def _window(hours_from_now, duration_hours=2):
    start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(hours=hours_from_now)
    return start, start + timedelta(hours=duration_hours)


def _reserve(client, account, slot_id, hours_from_now=3, duration_hours=2):
    start, end = _window(hours_from_now, duration_hours)
    return client.post(
        "/api/v1/parking/reserve",
        json={"slot_id": slot_id, "start_time": start.isoformat(), "end_time": end.isoformat()},
        headers=account["headers"],
    )


def test_reservation_price_rules():
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert reservation_price(10, start, start + timedelta(hours=2)) == 20
    # Started hours are billed in full.
    assert reservation_price(10, start, start + timedelta(hours=2, minutes=1)) == 30
    peak = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)
    assert reservation_price(10, peak, peak + timedelta(hours=1)) == 15
    assert reservation_price(10, peak.replace(hour=10), peak.replace(hour=11)) == 10


def test_create_slot_requires_admin(client, user):
    response = client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "B-01", "location": "Uptown"},
        headers=user["headers"],
    )
    assert response.status_code == 403


def test_duplicate_slot_number(client, admin, slot):
    response = client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "A-01", "location": "Downtown"},
        headers=admin["headers"],
    )
    assert response.status_code == 400


def test_list_slots_and_filters(client, admin, slot):
    client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "P-01", "location": "Airport", "type": "premium", "hourly_rate": 25},
        headers=admin["headers"],
    )
    assert len(client.get("/api/v1/parking/slots").json()) == 2
    available = client.get("/api/v1/parking/slots/available", params={"location": "Airport"}).json()
    assert [s["slot_number"] for s in available] == ["P-01"]
    premium = client.get("/api/v1/parking/slots/available", params={"type": "premium"}).json()
    assert [s["type"] for s in premium] == ["premium"]


def test_reserve_slot(client, user, slot):
    response = _reserve(client, user, slot["id"])
    assert response.status_code == 201
    body = response.json()
    reservation = body["reservation"]
    assert reservation["status"] == "active"
    assert reservation["slot"]["is_reserved"] is True
    assert reservation["slot"]["assigned_to"] == user["id"]
    assert body["check_in_code"] == make_check_in_code(reservation["id"], user["id"])
    assert body["payment"]["amount"] == reservation["amount"]
    # Two hours at 10/h, with the peak multiplier when the start falls in 07:00-09:59.
    assert reservation["amount"] in (20, 30)

    available = client.get("/api/v1/parking/slots/available").json()
    assert available == []

    payments = client.get("/api/v1/payments/history", headers=user["headers"]).json()
    assert payments[0]["type"] == "parking"
    assert payments[0]["status"] == "completed"
    assert payments[0]["reference_id"] == str(reservation["id"])


def test_reserve_taken_slot(client, user, other_user, slot):
    assert _reserve(client, user, slot["id"]).status_code == 201
    response = _reserve(client, other_user, slot["id"])
    assert response.status_code == 400
    assert response.json()["detail"] == "Slot not available"


def test_reserve_unknown_slot(client, user):
    assert _reserve(client, user, 999).status_code == 400


def test_reserve_rejects_empty_window(client, user, slot):
    start, _ = _window(3)
    response = client.post(
        "/api/v1/parking/reserve",
        json={"slot_id": slot["id"], "start_time": start.isoformat(), "end_time": start.isoformat()},
        headers=user["headers"],
    )
    assert response.status_code == 400


def test_cancel_early_refunds(client, user, slot):
    booked = _reserve(client, user, slot["id"], hours_from_now=5).json()
    response = client.put(
        f"/api/v1/parking/reservations/{booked['reservation']['id']}/cancel", headers=user["headers"]
    )
    assert response.status_code == 200
    body = response.json()
    assert body["reservation"]["status"] == "cancelled"
    assert body["refund_amount"] == booked["payment"]["amount"]
    assert body["reservation"]["slot"]["is_reserved"] is False

    payment = client.get(f"/api/v1/payments/{booked['payment']['id']}/status", headers=user["headers"])
    assert payment.json()["status"] == "refunded"
    assert len(client.get("/api/v1/parking/slots/available").json()) == 1


def test_cancel_late_keeps_payment(client, user, slot):
    booked = _reserve(client, user, slot["id"], hours_from_now=1).json()
    response = client.put(
        f"/api/v1/parking/reservations/{booked['reservation']['id']}/cancel", headers=user["headers"]
    )
    assert response.status_code == 200
    assert response.json()["refund_amount"] == 0
    payment = client.get(f"/api/v1/payments/{booked['payment']['id']}/status", headers=user["headers"])
    assert payment.json()["status"] == "completed"


def test_cancel_twice_and_foreign(client, user, other_user, slot):
    booked = _reserve(client, user, slot["id"]).json()
    url = f"/api/v1/parking/reservations/{booked['reservation']['id']}/cancel"
    assert client.put(url, headers=other_user["headers"]).status_code == 404
    assert client.put(url, headers=user["headers"]).status_code == 200
    response = client.put(url, headers=user["headers"])
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot cancel this reservation"


def test_check_in_and_out(client, user, slot):
    booked = _reserve(client, user, slot["id"]).json()

    response = client.post("/api/v1/parking/checkin", json={"code": "PR-1-bogus"}, headers=user["headers"])
    assert response.status_code == 400

    response = client.post("/api/v1/parking/checkin", json={"code": booked["check_in_code"]}, headers=user["headers"])
    assert response.status_code == 200
    assert response.json()["slot"]["is_occupied"] is True

    response = client.post("/api/v1/parking/checkout", json={"slot_id": slot["id"]}, headers=user["headers"])
    assert response.status_code == 200
    released = response.json()["slot"]
    assert released["is_occupied"] is False
    assert released["is_reserved"] is False
    assert released["assigned_to"] is None

    reservations = client.get("/api/v1/parking/reservations", headers=user["headers"]).json()
    assert reservations[0]["status"] == "completed"
    assert client.get("/api/v1/users/analytics", headers=user["headers"]).json()["total_parking"] == 1

    response = client.post("/api/v1/parking/checkout", json={"slot_id": slot["id"]}, headers=user["headers"])
    assert response.status_code == 400
    assert response.json()["detail"] == "No active reservation found"


def test_check_in_with_someone_elses_code(client, user, other_user, slot):
    booked = _reserve(client, user, slot["id"]).json()
    response = client.post(
        "/api/v1/parking/checkin", json={"code": booked["check_in_code"]}, headers=other_user["headers"]
    )
    assert response.status_code == 400


def test_parking_analytics(client, admin, user, slot):
    second = client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "A-02", "location": "Downtown", "hourly_rate": 10},
        headers=admin["headers"],
    ).json()
    first = _reserve(client, user, slot["id"], hours_from_now=5, duration_hours=2).json()
    kept = _reserve(client, user, second["id"], hours_from_now=5, duration_hours=4).json()
    client.put(f"/api/v1/parking/reservations/{first['reservation']['id']}/cancel", headers=user["headers"])

    response = client.get("/api/v1/parking/analytics", headers=user["headers"])
    assert response.status_code == 200
    analytics = response.json()
    assert analytics["total_reservations"] == 2
    assert analytics["active_reservations"] == 1
    assert analytics["total_spent"] == kept["payment"]["amount"]
    assert analytics["average_duration"] == 3.0


def test_reservations_list_newest_first(client, admin, user, slot):
    second = client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "A-02", "location": "Downtown"},
        headers=admin["headers"],
    ).json()
    _reserve(client, user, slot["id"])
    _reserve(client, user, second["id"])
    reservations = client.get("/api/v1/parking/reservations", headers=user["headers"]).json()
    assert [r["slot_id"] for r in reservations] == [second["id"], slot["id"]]
