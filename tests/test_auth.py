"""
Tests for User Account Endpoints

Tests for /api/users endpoints: registration, login, password change,
password reset, avatar and profile.
"""

import base64

import pytest
from fastapi import status

from bookshelf.config import get_settings
from bookshelf.services.security import verify_token
from tests.conftest import DEFAULT_PASSWORD, PNG_BYTES, auth_header


def registration(**overrides) -> dict:
    data = {
        "username": "newuser",
        "email": "newuser@example.com",
        "password": "SecurePass123",
        "confirm_password": "SecurePass123",
    }
    data.update(overrides)
    return data


class TestRegister:
    """Tests for POST /api/users/register."""

    def test_register_success(self, client):
        response = client.post("/api/users/register", json=registration())

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        assert body["token"]
        assert body["user"]["username"] == "newuser"
        assert body["user"]["email"] == "newuser@example.com"
        assert "password" not in body["user"]
        assert "hashed_password" not in body["user"]

    def test_register_normalizes_case(self, client):
        response = client.post(
            "/api/users/register",
            json=registration(username="NewUser", email="NewUser@Example.COM"),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["user"]["username"] == "newuser"
        assert response.json()["user"]["email"] == "newuser@example.com"

    def test_register_accepts_user_id_alias(self, client):
        data = registration()
        data["user_id"] = data.pop("username")

        response = client.post("/api/users/register", json=data)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["user"]["username"] == "newuser"

    def test_password_mismatch(self, client):
        response = client.post(
            "/api/users/register",
            json=registration(confirm_password="SecurePass124"),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "password_mismatch"

    def test_duplicate_email(self, client, user_a):
        response = client.post(
            "/api/users/register",
            json=registration(username="someoneelse", email=user_a.email),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "duplicate_email"

    def test_duplicate_handle(self, client, user_a):
        response = client.post(
            "/api/users/register",
            json=registration(username=user_a.username, email="other@example.com"),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "duplicate_handle"

    def test_email_checked_before_handle(self, client, user_a):
        response = client.post(
            "/api/users/register",
            json=registration(username=user_a.username, email=user_a.email),
        )

        assert response.json()["error"] == "duplicate_email"

    def test_first_token_survives_duplicate_attempt(self, client):
        first = client.post("/api/users/register", json=registration()).json()
        duplicate = client.post("/api/users/register", json=registration())

        assert duplicate.status_code == status.HTTP_400_BAD_REQUEST

        profile = client.get(
            "/api/users/profile",
            headers={"Authorization": f"Bearer {first['token']}"},
        )
        assert profile.status_code == status.HTTP_200_OK
        assert profile.json()["user"]["id"] == first["user"]["id"]

    @pytest.mark.parametrize(
        "password",
        ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"],
    )
    def test_weak_password_rejected(self, client, password):
        response = client.post(
            "/api/users/register",
            json=registration(password=password, confirm_password=password),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "validation_error"

    @pytest.mark.parametrize("username", ["ab", "1abc", "bad name", "x" * 51])
    def test_invalid_username_rejected(self, client, username):
        response = client.post("/api/users/register", json=registration(username=username))

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestLogin:
    """Tests for POST /api/users/login."""

    def test_login_with_username(self, client, user_a):
        response = client.post(
            "/api/users/login",
            json={"identifier": "alice", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["id"] == user_a.id

    def test_login_with_email(self, client, user_a):
        response = client.post(
            "/api/users/login",
            json={"identifier": "ALICE@example.com", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["id"] == user_a.id

    def test_login_accepts_user_id_alias(self, client, user_a):
        response = client.post(
            "/api/users/login",
            json={"user_id": "alice", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == status.HTTP_200_OK

    def test_wrong_password_and_unknown_user_look_the_same(self, client, user_a):
        wrong_password = client.post(
            "/api/users/login",
            json={"identifier": "alice", "password": "WrongPass123"},
        )
        unknown_user = client.post(
            "/api/users/login",
            json={"identifier": "nobody", "password": "anything"},
        )

        assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown_user.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong_password.json() == unknown_user.json()
        assert wrong_password.json()["error"] == "invalid_credentials"

    def test_register_then_login_round_trip(self, client):
        registered = client.post("/api/users/register", json=registration()).json()

        response = client.post(
            "/api/users/login",
            json={"identifier": "newuser", "password": "SecurePass123"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert verify_token(response.json()["token"]) == registered["user"]["id"]
        assert verify_token(registered["token"]) == registered["user"]["id"]


class TestPasswordReset:
    """Tests for POST /api/users/forgot-password and /reset-password."""

    def test_forgot_password_unknown_email(self, client):
        response = client.post(
            "/api/users/forgot-password",
            json={"email": "nobody@example.com"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "user_not_found"

    def test_full_reset_flow(self, client, user_a):
        forgot = client.post("/api/users/forgot-password", json={"email": user_a.email})
        assert forgot.status_code == status.HTTP_200_OK
        token = forgot.json()["reset_token"]

        reset = client.post(
            "/api/users/reset-password",
            json={"token": token, "password": "BrandNewPass1"},
        )
        assert reset.status_code == status.HTTP_200_OK

        old_login = client.post(
            "/api/users/login",
            json={"identifier": "alice", "password": DEFAULT_PASSWORD},
        )
        new_login = client.post(
            "/api/users/login",
            json={"identifier": "alice", "password": "BrandNewPass1"},
        )
        assert old_login.status_code == status.HTTP_401_UNAUTHORIZED
        assert new_login.status_code == status.HTTP_200_OK

    def test_reset_token_is_single_use(self, client, user_a):
        token = client.post(
            "/api/users/forgot-password", json={"email": user_a.email}
        ).json()["reset_token"]

        first = client.post(
            "/api/users/reset-password",
            json={"token": token, "password": "BrandNewPass1"},
        )
        second = client.post(
            "/api/users/reset-password",
            json={"token": token, "password": "AnotherPass2"},
        )

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert second.json()["error"] == "token_expired_or_invalid"

    def test_reset_with_bogus_token(self, client, user_a):
        response = client.post(
            "/api/users/reset-password",
            json={"token": "f" * 40, "password": "BrandNewPass1"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "token_expired_or_invalid"


class TestChangePassword:
    """Tests for POST /api/users/change-password."""

    def test_change_password(self, client, user_a, headers_a):
        response = client.post(
            "/api/users/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "ChangedPass9"},
            headers=headers_a,
        )

        assert response.status_code == status.HTTP_200_OK

        login = client.post(
            "/api/users/login",
            json={"identifier": "alice", "password": "ChangedPass9"},
        )
        assert login.status_code == status.HTTP_200_OK

    def test_wrong_current_password(self, client, headers_a):
        response = client.post(
            "/api/users/change-password",
            json={"current_password": "WrongPass123", "new_password": "ChangedPass9"},
            headers=headers_a,
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "invalid_credentials"

    def test_weak_new_password(self, client, headers_a):
        response = client.post(
            "/api/users/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "weak"},
            headers=headers_a,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_requires_authentication(self, client):
        response = client.post(
            "/api/users/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "ChangedPass9"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestAvatar:
    """Tests for PUT /api/users/avatar."""

    def test_set_avatar_url(self, client, headers_a):
        response = client.put(
            "/api/users/avatar",
            json={"avatar_url": "https://example.com/alice.png"},
            headers=headers_a,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["avatar_url"] == "https://example.com/alice.png"

    def test_set_inline_avatar_stored_verbatim(self, client, headers_a):
        value = f"data:image/png;base64,{base64.b64encode(PNG_BYTES).decode()}"

        response = client.put("/api/users/avatar", json={"avatar_url": value}, headers=headers_a)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["avatar_url"] == value

    def test_invalid_avatar(self, client, headers_a):
        response = client.put(
            "/api/users/avatar",
            json={"avatar_url": "not an image"},
            headers=headers_a,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "invalid_avatar_format"

    def test_inline_avatar_too_large(self, client, headers_a, monkeypatch):
        monkeypatch.setattr(get_settings(), "max_avatar_bytes", 16)
        value = f"data:image/png;base64,{base64.b64encode(b'0' * 64).decode()}"

        response = client.put("/api/users/avatar", json={"avatar_url": value}, headers=headers_a)

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error"] == "payload_too_large"


class TestProfile:
    """Tests for GET /api/users/profile."""

    def test_profile_lists_own_books(self, client, make_book, user_a, user_b, fiction):
        make_book(user_a, fiction, title="Mine")
        make_book(user_b, fiction, title="Not mine")

        response = client.get("/api/users/profile", headers=auth_header(user_a))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert [book["title"] for book in body["books"]] == ["Mine"]
        assert body["books"][0]["genre_name"] == "Fiction"

    def test_profile_requires_authentication(self, client):
        response = client.get("/api/users/profile")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
