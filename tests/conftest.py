"""Shared fixtures: a fresh SQLite file per test and an app client."""

import pytest
from fastapi.testclient import TestClient

from park_and_ride_api.app.core.config import settings
from park_and_ride_api.app.core.db import get_cursor, init_db
from park_and_ride_api.app.main import app
from park_and_ride_api.app.services.cache_service import CacheService
from park_and_ride_api.app.services.socket_service import SocketService


@pytest.fixture(autouse=True)
def fresh_state(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "redis_url", "")
    CacheService.set_client(None)
    SocketService.reset()
    init_db()
    yield
    CacheService.set_client(None)
    SocketService.reset()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _register(client, email, name, password="secret123"):
    response = client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": password, "phone": "+1 555 0100"},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _account(data):
    token = data["access_token"]
    return {"id": data["user"]["id"], "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture
def register(client):
    """Factory registering a user and returning its id, token and headers."""

    def _make(email, name="Test User", password="secret123"):
        return _account(_register(client, email, name, password))

    return _make


@pytest.fixture
def user(register):
    return register("jane@example.com", "Jane Doe")


@pytest.fixture
def other_user(register):
    return register("john@example.com", "John Roe")


@pytest.fixture
def admin(register):
    account = register("admin@example.com", "Ada Admin")
    with get_cursor() as cursor:
        cursor.execute("UPDATE users SET role = 'admin' WHERE id = ?", (account["id"],))
    return account


@pytest.fixture
def slot(client, admin):
    response = client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "A-01", "location": "Downtown", "type": "standard", "hourly_rate": 10},
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()
