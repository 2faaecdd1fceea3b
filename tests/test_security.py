"""
Tests for Security Primitives

Password hashing (bcrypt via passlib) and bearer tokens (python-jose).
"""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from bookshelf.config import get_settings
from bookshelf.exceptions import InvalidToken
from bookshelf.services.security import (
    TOKEN_TYPE,
    hash_password,
    issue_token,
    verify_password,
    verify_token,
)


class TestPasswordHashing:
    def test_hash_is_not_plaintext(self):
        hashed = hash_password("SecurePass123")

        assert hashed != "SecurePass123"
        assert hashed.startswith("$2b$")

    def test_same_password_hashes_differently(self):
        """Each hash carries its own random salt."""
        assert hash_password("SecurePass123") != hash_password("SecurePass123")

    def test_verify_correct_password(self):
        hashed = hash_password("SecurePass123")
        assert verify_password("SecurePass123", hashed) is True

    def test_verify_wrong_password(self):
        hashed = hash_password("SecurePass123")
        assert verify_password("securepass123", hashed) is False


class TestBearerTokens:
    def test_round_trip(self):
        token = issue_token(42)
        assert verify_token(token) == 42

    def test_payload_claims(self):
        settings = get_settings()
        token = issue_token(7)

        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])

        assert payload["sub"] == "7"
        assert payload["type"] == TOKEN_TYPE
        assert payload["exp"] > payload["iat"]

    def test_default_lifetime_is_thirty_days(self):
        settings = get_settings()
        payload = jwt.decode(
            issue_token(1), settings.secret_key, algorithms=[settings.jwt_algorithm]
        )

        lifetime = payload["exp"] - payload["iat"]
        assert lifetime == int(timedelta(days=30).total_seconds())

    def test_expired_token_rejected(self):
        token = issue_token(1, expires_delta=timedelta(seconds=-1))

        with pytest.raises(InvalidToken):
            verify_token(token)

    def test_token_signed_with_other_key_rejected(self):
        now = datetime.now(UTC)
        forged = jwt.encode(
            {"sub": "1", "iat": now, "exp": now + timedelta(hours=1), "type": TOKEN_TYPE},
            "a-completely-different-signing-key-of-32-chars",
            algorithm="HS256",
        )

        with pytest.raises(InvalidToken):
            verify_token(forged)

    def test_tampered_token_rejected(self):
        header, payload, signature = issue_token(1).split(".")
        tampered = ".".join([header, payload, signature[::-1]])

        with pytest.raises(InvalidToken):
            verify_token(tampered)

    def test_malformed_token_rejected(self):
        with pytest.raises(InvalidToken):
            verify_token("not-a-jwt")

    def test_wrong_token_type_rejected(self):
        settings = get_settings()
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "1", "iat": now, "exp": now + timedelta(hours=1), "type": "refresh"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(InvalidToken):
            verify_token(token)

    def test_non_numeric_subject_rejected(self):
        settings = get_settings()
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "alice", "iat": now, "exp": now + timedelta(hours=1), "type": TOKEN_TYPE},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(InvalidToken):
            verify_token(token)
