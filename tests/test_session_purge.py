"""Unit and integration tests for the expired-session purge: delete-only purge_expired_sessions."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from support import DatabaseTestCase

from smart_city.models import User, UserSession
from smart_city.services.session_purge import purge_expired_sessions


class TestPurgeDisabled(unittest.TestCase):
    """When SESSION_PURGE_ENABLED is False, purge_expired_sessions does nothing."""

    def test_returns_zero_and_does_not_query(self) -> None:
        settings = MagicMock()
        settings.SESSION_PURGE_ENABLED = False
        session = MagicMock()
        self.assertEqual(purge_expired_sessions(session, settings), 0)
        session.query.assert_not_called()
        session.commit.assert_not_called()


class TestPurgeNothingExpired(unittest.TestCase):
    def test_returns_zero(self) -> None:
        settings = MagicMock()
        settings.SESSION_PURGE_ENABLED = True
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.return_value = 0
        self.assertEqual(purge_expired_sessions(session, settings), 0)
        session.commit.assert_called_once()


class TestPurgeDeletesExpired(unittest.TestCase):
    """When there are expired sessions, they are deleted in one statement and counted."""

    def test_deletes_expired_sessions(self) -> None:
        settings = MagicMock()
        settings.SESSION_PURGE_ENABLED = True
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.return_value = 3
        self.assertEqual(purge_expired_sessions(session, settings), 3)
        session.query.return_value.filter.return_value.delete.assert_called_once_with(
            synchronize_session=False
        )
        session.add.assert_not_called()
        session.commit.assert_called_once()


class TestPurgeIntegration(DatabaseTestCase):
    """Against a real database: expired rows go, live rows stay."""

    def test_purge_keeps_live_sessions(self) -> None:
        user = User(
            email="purge@smartcity.com",
            password_hash="x",
            first_name="Purge",
            last_name="Test",
            role="CITIZEN",
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        now = datetime.now(UTC)
        self.db.add_all(
            [
                UserSession(user_id=user.id, token="expired-1", expires_at=now - timedelta(days=1)),
                UserSession(user_id=user.id, token="expired-2", expires_at=now - timedelta(seconds=5)),
                UserSession(user_id=user.id, token="live", expires_at=now + timedelta(days=6)),
            ]
        )
        self.db.commit()

        settings = self.settings.model_copy(update={"SESSION_PURGE_ENABLED": True})
        self.assertEqual(purge_expired_sessions(self.db, settings, now=now), 2)

        remaining = [s.token for s in self.db.query(UserSession).all()]
        self.assertEqual(remaining, ["live"])

        # Second run finds nothing left to delete.
        self.assertEqual(purge_expired_sessions(self.db, settings, now=now), 0)


if __name__ == "__main__":
    unittest.main()
