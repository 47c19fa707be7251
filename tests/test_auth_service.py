"""Tests for the token service: registration, login, refresh rotation, logout and password change."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from sqlalchemy import update
from support import DEFAULT_PASSWORD, DatabaseTestCase

from smart_city.core.security import create_refresh_token
from smart_city.models import User, UserSession
from smart_city.schemas.auth import RegisterRequest
from smart_city.services import auth as auth_service
from smart_city.services.auth import (
    AccountDeactivatedError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
)


class AuthServiceTestCase(DatabaseTestCase):
    def register(self, email: str = "citizen1@smartcity.com", **extra) -> auth_service.AuthResult:
        data = RegisterRequest(
            email=email,
            password=DEFAULT_PASSWORD,
            first_name="Ana",
            last_name="García",
            **extra,
        )
        return auth_service.register(self.db, self.settings, data)

    def session_tokens(self, user_id: int) -> list[str]:
        self.db.expire_all()
        return [
            s.token
            for s in self.db.query(UserSession).filter(UserSession.user_id == user_id).all()
        ]


class TestRegister(AuthServiceTestCase):
    def test_register_stores_hash_and_opens_session(self) -> None:
        result = self.register()
        self.assertEqual(result.user.role, "CITIZEN")
        self.assertTrue(result.user.is_active)
        self.assertNotEqual(result.user.password_hash, DEFAULT_PASSWORD)
        self.assertEqual(self.session_tokens(result.user.id), [result.refresh_token])
        self.assertNotEqual(result.token, result.refresh_token)

    def test_register_gets_default_preferences(self) -> None:
        result = self.register()
        self.assertEqual(result.user.preferences["language"], "es")
        self.assertTrue(result.user.preferences["notifications"])

    def test_register_with_explicit_role(self) -> None:
        result = self.register(email="op@smartcity.com", role="OPERATOR")
        self.assertEqual(result.user.role, "OPERATOR")

    def test_email_is_normalized(self) -> None:
        result = self.register(email="Citizen1@SmartCity.com")
        self.assertEqual(result.user.email, "citizen1@smartcity.com")

    def test_duplicate_email_rejected_case_insensitively(self) -> None:
        self.register()
        with self.assertRaises(DuplicateEmailError):
            self.register(email="CITIZEN1@smartcity.com")
        self.assertEqual(self.db.query(User).count(), 1)


class TestLogin(AuthServiceTestCase):
    def test_login_opens_an_additional_session(self) -> None:
        registered = self.register()
        first = auth_service.login(self.db, self.settings, "citizen1@smartcity.com", DEFAULT_PASSWORD)
        second = auth_service.login(self.db, self.settings, "citizen1@smartcity.com", DEFAULT_PASSWORD)
        tokens = self.session_tokens(registered.user.id)
        self.assertEqual(len(tokens), 3)
        self.assertIn(first.refresh_token, tokens)
        self.assertIn(second.refresh_token, tokens)

    def test_unknown_email_and_wrong_password_look_the_same(self) -> None:
        self.register()
        with self.assertRaises(InvalidCredentialsError) as unknown:
            auth_service.login(self.db, self.settings, "nobody@smartcity.com", DEFAULT_PASSWORD)
        with self.assertRaises(InvalidCredentialsError) as wrong:
            auth_service.login(self.db, self.settings, "citizen1@smartcity.com", "Wrong123!")
        self.assertEqual(unknown.exception.message, wrong.exception.message)

    def test_deactivated_account_rejected_after_password_check(self) -> None:
        result = self.register()
        result.user.is_active = False
        self.db.commit()
        with self.assertRaises(AccountDeactivatedError):
            auth_service.login(self.db, self.settings, "citizen1@smartcity.com", DEFAULT_PASSWORD)
        # Wrong password on a deactivated account still reports bad credentials.
        with self.assertRaises(InvalidCredentialsError):
            auth_service.login(self.db, self.settings, "citizen1@smartcity.com", "Wrong123!")


class TestRefresh(AuthServiceTestCase):
    def test_rotation_replaces_token_in_the_same_session(self) -> None:
        registered = self.register()
        session_id = self.db.query(UserSession).one().id

        pair = auth_service.refresh(self.db, self.settings, registered.refresh_token)

        self.assertNotEqual(pair.refresh_token, registered.refresh_token)
        self.db.expire_all()
        row = self.db.query(UserSession).one()
        self.assertEqual(row.id, session_id)
        self.assertEqual(row.token, pair.refresh_token)

    def test_refresh_token_works_only_once(self) -> None:
        registered = self.register()
        auth_service.refresh(self.db, self.settings, registered.refresh_token)
        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, registered.refresh_token)

    def test_concurrent_rotation_loses_the_conditional_update(self) -> None:
        registered = self.register()
        original = registered.refresh_token
        winner = create_refresh_token(
            registered.user.id, registered.user.email, registered.user.role, self.settings
        )
        issue_tokens = auth_service._issue_tokens

        def rotate_elsewhere_first(user, settings):
            # Another request rotates the same session between this call's lookup and its update.
            other = self.SessionLocal()
            try:
                other.execute(
                    update(UserSession)
                    .where(UserSession.token == original)
                    .values(token=winner)
                )
                other.commit()
            finally:
                other.close()
            return issue_tokens(user, settings)

        with patch.object(auth_service, "_issue_tokens", side_effect=rotate_elsewhere_first):
            with self.assertRaises(InvalidTokenError):
                auth_service.refresh(self.db, self.settings, original)

        self.assertEqual(self.session_tokens(registered.user.id), [winner])

    def test_chain_of_rotations(self) -> None:
        token = self.register().refresh_token
        for _ in range(3):
            token = auth_service.refresh(self.db, self.settings, token).refresh_token
        self.assertEqual(self.db.query(UserSession).count(), 1)

    def test_access_token_is_not_a_refresh_token(self) -> None:
        registered = self.register()
        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, registered.token)

    def test_garbage_token_rejected(self) -> None:
        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, "not-a-jwt")

    def test_expired_session_rejected(self) -> None:
        registered = self.register()
        row = self.db.query(UserSession).one()
        row.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        self.db.commit()
        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, registered.refresh_token)

    def test_deactivated_user_cannot_refresh(self) -> None:
        registered = self.register()
        registered.user.is_active = False
        self.db.commit()
        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, registered.refresh_token)


class TestLogout(AuthServiceTestCase):
    def test_logout_deletes_only_that_session_and_is_idempotent(self) -> None:
        registered = self.register()
        other = auth_service.login(self.db, self.settings, "citizen1@smartcity.com", DEFAULT_PASSWORD)

        self.assertEqual(auth_service.logout(self.db, registered.refresh_token), 1)
        self.assertEqual(auth_service.logout(self.db, registered.refresh_token), 0)
        self.assertEqual(self.session_tokens(registered.user.id), [other.refresh_token])

        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, registered.refresh_token)
        auth_service.refresh(self.db, self.settings, other.refresh_token)

    def test_logout_all_leaves_other_users_alone(self) -> None:
        mine = self.register()
        auth_service.login(self.db, self.settings, "citizen1@smartcity.com", DEFAULT_PASSWORD)
        theirs = self.register(email="citizen2@smartcity.com")

        self.assertEqual(auth_service.logout_all(self.db, mine.user.id), 2)
        self.assertEqual(self.session_tokens(mine.user.id), [])
        self.assertEqual(self.session_tokens(theirs.user.id), [theirs.refresh_token])


class TestChangePassword(AuthServiceTestCase):
    def test_change_password_ends_every_session(self) -> None:
        registered = self.register()
        auth_service.change_password(
            self.db, self.settings, registered.user.id, DEFAULT_PASSWORD, "NewPass456$"
        )
        self.assertEqual(self.session_tokens(registered.user.id), [])
        with self.assertRaises(InvalidTokenError):
            auth_service.refresh(self.db, self.settings, registered.refresh_token)
        with self.assertRaises(InvalidCredentialsError):
            auth_service.login(self.db, self.settings, "citizen1@smartcity.com", DEFAULT_PASSWORD)
        auth_service.login(self.db, self.settings, "citizen1@smartcity.com", "NewPass456$")

    def test_wrong_current_password_changes_nothing(self) -> None:
        registered = self.register()
        old_hash = registered.user.password_hash
        with self.assertRaises(InvalidCredentialsError):
            auth_service.change_password(
                self.db, self.settings, registered.user.id, "Wrong123!", "NewPass456$"
            )
        self.db.refresh(registered.user)
        self.assertEqual(registered.user.password_hash, old_hash)
        self.assertEqual(len(self.session_tokens(registered.user.id)), 1)

    def test_unknown_user(self) -> None:
        with self.assertRaises(UserNotFoundError):
            auth_service.change_password(self.db, self.settings, 999, DEFAULT_PASSWORD, "NewPass456$")


class TestVerifyAccessToken(AuthServiceTestCase):
    def test_valid_and_invalid(self) -> None:
        registered = self.register()
        payload = auth_service.verify_access_token(self.settings, registered.token)
        self.assertEqual(payload["userId"], registered.user.id)
        self.assertIsNone(auth_service.verify_access_token(self.settings, registered.refresh_token))
        self.assertIsNone(auth_service.verify_access_token(self.settings, "garbage"))
