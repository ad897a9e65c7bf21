"""Shared fixtures: a fresh SQLite DB and media directory per test."""

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from dealership_platform.api.server import create_app
from dealership_platform.config import Config

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"
USER_PASSWORD = "secret123"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "dealership.sqlite"),
        LOG_LEVEL="WARNING",
        AUTH_JWT_SECRET="test-secret",
        AUTH_TOKEN_EXPIRE_MINUTES=60,
        AUTH_BOOTSTRAP_ADMIN_EMAIL=ADMIN_EMAIL,
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=ADMIN_PASSWORD,
        AUTH_COOKIE_NAME="dp_token",
        AUTH_COOKIE_SECURE=False,
        CORS_ALLOW_ORIGINS="",
        STORAGE_DIR=str(tmp_path / "media"),
        STORAGE_BUCKET="car-images",
        STORAGE_MAX_FILE_BYTES=1024,
        PUBLIC_MEDIA_URL="/media",
        FRONTEND_DIR=None,
    )


@pytest.fixture
def app(cfg):
    return create_app(cfg)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login(client: TestClient, email: str, password: str) -> str:
    """Log in and return the access token; the session cookie is dropped again."""
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return resp.json()["access_token"]


def signup(client: TestClient, email: str, password: str = USER_PASSWORD, **extra: Any):
    body = {
        "firstName": "Maria",
        "lastName": "Santos",
        "email": email,
        "contactNumber": "09171234567",
        "password": password,
    }
    body.update(extra)
    return client.post("/api/auth/signup", json=body)


def car_payload(**overrides: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "stock_number": "STK-001",
        "brand": "Toyota",
        "model": "Vios",
        "year": 2021,
        "month": 6,
        "mileage": 15000,
        "fuel_type": "Gasoline",
        "transmission": "Automatic",
        "price": 650000,
        "condition": "Used",
    }
    body.update(overrides)
    return body


@pytest.fixture
def admin_token(client) -> str:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def user_token(client) -> str:
    assert signup(client, "buyer@example.com").status_code == 200
    return login(client, "buyer@example.com", USER_PASSWORD)


@pytest.fixture
def other_user_token(client) -> str:
    assert signup(client, "other@example.com", firstName="Jose").status_code == 200
    return login(client, "other@example.com", USER_PASSWORD)


@pytest.fixture
def make_car(client, admin_token):
    """Factory: create a listing through the API and return it."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        resp = client.post("/api/cars", json=car_payload(**overrides), headers=bearer(admin_token))
        assert resp.status_code == 201, resp.text
        return resp.json()["car"]

    return _make
