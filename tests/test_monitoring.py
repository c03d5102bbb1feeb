import logging

import pytest
from fastapi.testclient import TestClient

from park_and_ride_api.app.main import create_app


@pytest.fixture
def failing_client():
    app = create_app()

    @app.get("/boom")
    async def boom():
        raise KeyError("missing")

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_liveness(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["uptime"] >= 0
    assert body["environment"] == "development"


def test_health_report(client):
    response = client.get("/api/v1/monitoring/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["cache"]["status"] == "DISABLED"
    assert body["sockets"] == 0
    memory = body["system"]["memory"]
    assert memory["total"] > 0
    assert 0 <= memory["usage"] <= 100
    assert len(body["system"]["cpu"]["load_average"]) == 3
    assert body["system"]["cpu"]["cores"] >= 1


def test_requests_are_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="park_and_ride_api.access"):
        client.get("/health")
    assert any("GET /health -> 200" in record.getMessage() for record in caplog.records)


def test_unknown_route_is_404(client):
    assert client.get("/api/v1/nowhere").status_code == 404


def test_unhandled_error_returns_generic_500(failing_client):
    response = failing_client.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}


def test_failed_requests_are_logged(failing_client, caplog):
    with caplog.at_level(logging.INFO, logger="park_and_ride_api.access"):
        failing_client.get("/boom")
    assert any("GET /boom -> 500" in record.getMessage() for record in caplog.records)
