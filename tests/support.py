"""Shared test cases: a fresh in-memory SQLite database per test, and an API client bound to it."""

import unittest
from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from smart_city.core.config import get_settings
from smart_city.core.database import get_db
from smart_city.main import app
from smart_city.models import Base

API = get_settings().API_V1_PREFIX

DEFAULT_PASSWORD = "Citizen123!"


class DatabaseTestCase(unittest.TestCase):
    """Creates all tables in a private in-memory database for each test."""

    def setUp(self) -> None:
        # SQLite in-memory requires StaticPool to keep the single connection alive
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self.db = self.SessionLocal()
        self.settings = get_settings()

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()


class ApiTestCase(DatabaseTestCase):
    """DatabaseTestCase plus a TestClient whose get_db yields sessions on the test database."""

    def setUp(self) -> None:
        super().setUp()

        def override_get_db() -> Generator[Session, None, None]:
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        super().tearDown()

    def register(
        self,
        email: str,
        password: str = DEFAULT_PASSWORD,
        role: str | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        """Register through the API and return the response data (user, token, refreshToken)."""
        body: dict[str, Any] = {
            "email": email,
            "password": password,
            "firstName": "Test",
            "lastName": "User",
            **extra,
        }
        if role is not None:
            body["role"] = role
        resp = self.client.post(f"{API}/auth/register", json=body)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def accident_payload(**overrides: Any) -> dict[str, Any]:
    """A valid POST /accidents body at New York City Hall."""
    payload: dict[str, Any] = {
        "location": "Main St & Oak Ave",
        "type": "COLLISION",
        "severity": "MODERATE",
        "date": datetime(2024, 1, 15, 10, 30, tzinfo=UTC).isoformat(),
        "description": "Two-car collision at the intersection",
        "latitude": 40.7128,
        "longitude": -74.0060,
    }
    payload.update(overrides)
    return payload
