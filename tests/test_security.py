"""Unit tests for smart_city.core.security: bcrypt hashing and JWT issue/verify."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import SecretStr

from smart_city.core.config import get_settings
from smart_city.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing(unittest.TestCase):
    """Stored hashes never equal the plaintext and verify only the right password."""

    def test_hash_differs_from_plaintext_and_verifies(self) -> None:
        for plain in ("Citizen123!", "Adm1n$ecret", "ñandú-Pass1!"):
            hashed = hash_password(plain, rounds=4)
            self.assertNotEqual(hashed, plain)
            self.assertTrue(verify_password(plain, hashed))

    def test_wrong_password_fails(self) -> None:
        hashed = hash_password("Citizen123!", rounds=4)
        self.assertFalse(verify_password("Citizen123?", hashed))

    def test_same_password_gets_distinct_salts(self) -> None:
        self.assertNotEqual(hash_password("Citizen123!", 4), hash_password("Citizen123!", 4))

    def test_malformed_hash_returns_false(self) -> None:
        self.assertFalse(verify_password("Citizen123!", "not-a-bcrypt-hash"))

    def test_rounds_are_encoded_in_hash(self) -> None:
        self.assertTrue(hash_password("Citizen123!", rounds=5).startswith("$2b$05$"))


class TestTokens(unittest.TestCase):
    """Access and refresh tokens carry identity claims and are checked for type, iss and aud."""

    def setUp(self) -> None:
        self.settings = get_settings()

    def test_access_token_claims(self) -> None:
        token = create_access_token(7, "citizen1@smartcity.com", "CITIZEN", self.settings)
        payload = decode_token(token, self.settings, TOKEN_TYPE_ACCESS)
        self.assertEqual(payload["userId"], 7)
        self.assertEqual(payload["sub"], "7")
        self.assertEqual(payload["email"], "citizen1@smartcity.com")
        self.assertEqual(payload["role"], "CITIZEN")
        self.assertEqual(payload["iss"], self.settings.JWT_ISSUER)
        self.assertEqual(payload["aud"], self.settings.JWT_AUDIENCE)

    def test_access_token_lifetime_matches_settings(self) -> None:
        token = create_access_token(1, "a@b.com", "ADMIN", self.settings)
        payload = decode_token(token, self.settings, TOKEN_TYPE_ACCESS)
        self.assertEqual(
            payload["exp"] - payload["iat"],
            self.settings.JWT_ACCESS_EXPIRE_MINUTES * 60,
        )

    def test_tokens_minted_together_are_unique(self) -> None:
        a = create_refresh_token(1, "a@b.com", "CITIZEN", self.settings)
        b = create_refresh_token(1, "a@b.com", "CITIZEN", self.settings)
        self.assertNotEqual(a, b)

    def test_refresh_token_is_not_an_access_token(self) -> None:
        token = create_refresh_token(1, "a@b.com", "CITIZEN", self.settings)
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token(token, self.settings, TOKEN_TYPE_ACCESS)
        self.assertEqual(decode_token(token, self.settings, TOKEN_TYPE_REFRESH)["userId"], 1)

    def test_wrong_audience_rejected(self) -> None:
        token = create_access_token(1, "a@b.com", "CITIZEN", self.settings)
        other = self.settings.model_copy(update={"JWT_AUDIENCE": "someone-else"})
        with self.assertRaises(jwt.InvalidAudienceError):
            decode_token(token, other, TOKEN_TYPE_ACCESS)

    def test_wrong_issuer_rejected(self) -> None:
        token = create_access_token(1, "a@b.com", "CITIZEN", self.settings)
        other = self.settings.model_copy(update={"JWT_ISSUER": "someone-else"})
        with self.assertRaises(jwt.InvalidIssuerError):
            decode_token(token, other, TOKEN_TYPE_ACCESS)

    def test_expired_token_raises_expired_signature(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": "1",
                "userId": 1,
                "email": "a@b.com",
                "role": "CITIZEN",
                "type": TOKEN_TYPE_ACCESS,
                "iat": now - timedelta(hours=2),
                "exp": now - timedelta(hours=1),
                "iss": self.settings.JWT_ISSUER,
                "aud": self.settings.JWT_AUDIENCE,
            },
            self.settings.JWT_SECRET.get_secret_value(),
            algorithm=self.settings.JWT_ALGORITHM,
        )
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_token(token, self.settings, TOKEN_TYPE_ACCESS)

    def test_tampered_signature_rejected(self) -> None:
        token = create_access_token(1, "a@b.com", "CITIZEN", self.settings)
        other = self.settings.model_copy(update={"JWT_SECRET": SecretStr("x" * 40)})
        with self.assertRaises(jwt.InvalidSignatureError):
            decode_token(token, other, TOKEN_TYPE_ACCESS)


if __name__ == "__main__":
    unittest.main()
