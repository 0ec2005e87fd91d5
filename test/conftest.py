"""Shared fixtures: row builders, fake transactions and an authenticated test client."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_user(
    user_id: int = 1,
    *,
    username: str = "john",
    roles: list[str] | None = None,
    is_active: bool = True,
) -> dict[str, Any]:
    return {
        "id": user_id,
        "username": username,
        "email": f"{username}@example.com",
        "password_hash": "",
        "is_active": is_active,
        "roles": roles if roles is not None else ["ROLE_USER"],
        "created_at": NOW - timedelta(days=30),
        "updated_at": NOW - timedelta(days=30),
    }


def make_car(car_id: int = 1, *, registration_number: str = "SED-001", car_type: str = "SEDAN") -> dict[str, Any]:
    return {
        "id": car_id,
        "registration_number": registration_number,
        "type": car_type,
        "cost_per_day": Decimal("50.00"),
        "capacity": 4,
        "created_at": NOW - timedelta(days=60),
        "updated_at": NOW - timedelta(days=60),
    }


def make_booking(
    booking_id: int = 1,
    *,
    car_id: int = 1,
    user_id: int = 1,
    booking_date: datetime | None = None,
    duration: int = 3,
    username: str = "john",
    registration_number: str = "SED-001",
) -> dict[str, Any]:
    return {
        "id": booking_id,
        "car_id": car_id,
        "user_id": user_id,
        "booking_date": booking_date or NOW + timedelta(days=10),
        "duration": duration,
        "created_at": NOW - timedelta(days=1),
        "car_registration_number": registration_number,
        "username": username,
    }


@pytest.fixture
def fake_transaction(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace `core.db.transaction` with a context manager yielding a mock connection."""
    from core import db

    conn = MagicMock(name="conn")

    @asynccontextmanager
    async def _transaction():
        yield conn

    monkeypatch.setattr(db, "transaction", _transaction)
    return conn


@pytest.fixture
def regular_user() -> dict[str, Any]:
    return make_user(1, username="john", roles=["ROLE_USER"])


@pytest.fixture
def admin_user() -> dict[str, Any]:
    return make_user(99, username="admin", roles=["ROLE_ADMIN"])


@pytest.fixture
def app():
    from main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


def _client_as(app, user: dict[str, Any] | None) -> TestClient:
    from auth import dependencies as auth_dependencies

    if user is not None:
        app.dependency_overrides[auth_dependencies.get_current_user] = lambda: user
    return TestClient(app)


@pytest.fixture
def anonymous_client(app) -> Iterator[TestClient]:
    yield _client_as(app, None)


@pytest.fixture
def user_client(app, regular_user) -> Iterator[TestClient]:
    yield _client_as(app, regular_user)


@pytest.fixture
def admin_client(app, admin_user) -> Iterator[TestClient]:
    yield _client_as(app, admin_user)
