"""Tests for authentication endpoints."""

from __future__ import annotations

from fastapi import status

from inkwell.models import RefreshToken, User
from tests.conftest import TEST_PASSWORD

REGISTER_PAYLOAD = {
    "email": "Carol@Example.com",
    "username": "carol",
    "password": "Str0ng!pass",
    "display_name": "Carol",
}


def _register(client, **overrides):
    return client.post("/api/v1/auth/register", json={**REGISTER_PAYLOAD, **overrides})


class TestRegister:
    def test_register_returns_tokens_and_sanitised_user(self, client, db_session) -> None:
        response = _register(client)
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()

        assert data["token_type"] == "bearer"
        assert data["access_token"] and data["refresh_token"]
        assert data["user"]["email"] == "carol@example.com"
        assert data["user"]["profile"]["display_name"] == "Carol"
        assert "password_hash" not in data["user"]
        assert "refresh_tokens" not in data["user"]

        user = db_session.query(User).filter(User.username == "carol").one()
        assert user.password_hash != REGISTER_PAYLOAD["password"]
        assert db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).count() == 1

    def test_duplicate_email_is_conflict(self, client, test_user) -> None:
        response = _register(client, email=test_user.email, username="someone")
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["message"] == "Email already exists"

    def test_duplicate_username_is_conflict(self, client, test_user) -> None:
        response = _register(client, username=test_user.username)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["message"] == "Username already exists"

    def test_weak_password_is_rejected(self, client) -> None:
        response = _register(client, password="password")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["error"]["message"] == "Validation failed"

    def test_username_characters_are_restricted(self, client) -> None:
        response = _register(client, username="bad name!")
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestLogin:
    def test_login_with_username(self, client, test_user) -> None:
        response = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.username, "password": TEST_PASSWORD},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["id"] == test_user.id

    def test_login_with_email_is_case_insensitive(self, client, test_user) -> None:
        response = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.email.upper(), "password": TEST_PASSWORD},
        )
        assert response.status_code == status.HTTP_200_OK

    def test_wrong_password_and_unknown_user_look_the_same(self, client, test_user) -> None:
        wrong = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.username, "password": "Wr0ng!pass"},
        )
        unknown = client.post(
            "/api/v1/auth/login",
            json={"identifier": "nobody", "password": TEST_PASSWORD},
        )
        assert wrong.status_code == unknown.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong.json()["error"]["message"] == unknown.json()["error"]["message"]
        assert wrong.json()["error"]["message"] == "Invalid credentials"


class TestRefreshRotation:
    def _login(self, client, user) -> dict:
        response = client.post(
            "/api/v1/auth/login",
            json={"identifier": user.username, "password": TEST_PASSWORD},
        )
        assert response.status_code == status.HTTP_200_OK
        return response.json()

    def test_refresh_issues_a_new_pair(self, client, test_user) -> None:
        tokens = self._login(client, test_user)
        response = client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert response.status_code == status.HTTP_200_OK
        rotated = response.json()
        assert rotated["refresh_token"] != tokens["refresh_token"]

    def test_refresh_token_is_single_use(self, client, test_user) -> None:
        tokens = self._login(client, test_user)
        first = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        second = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_401_UNAUTHORIZED

        rotated = first.json()["refresh_token"]
        third = client.post("/api/v1/auth/refresh", json={"refresh_token": rotated})
        assert third.status_code == status.HTTP_200_OK

    def test_refresh_with_mismatched_user_id(self, client, test_user, other_user) -> None:
        tokens = self._login(client, test_user)
        response = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": tokens["refresh_token"], "user_id": other_user.id},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_access_token_is_not_a_refresh_token(self, client, test_user) -> None:
        tokens = self._login(client, test_user)
        response = client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["message"] == "Invalid or expired refresh token"

    def test_logout_revokes_the_token(self, client, test_user) -> None:
        tokens = self._login(client, test_user)
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}
        response = client.post(
            "/api/v1/auth/logout",
            json={"refresh_token": tokens["refresh_token"]},
            headers=headers,
        )
        assert response.status_code == status.HTTP_200_OK

        reuse = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert reuse.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout_all_revokes_every_session(self, client, test_user) -> None:
        first = self._login(client, test_user)
        second = self._login(client, test_user)
        headers = {"Authorization": f"Bearer {first['access_token']}"}
        assert client.post("/api/v1/auth/logout-all", headers=headers).status_code == 200

        for tokens in (first, second):
            reuse = client.post(
                "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
            )
            assert reuse.status_code == status.HTTP_401_UNAUTHORIZED


class TestPasswordReset:
    def test_forgot_password_message_does_not_leak_existence(self, client, test_user) -> None:
        known = client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})
        unknown = client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == status.HTTP_200_OK
        assert known.json() == unknown.json()

    def test_reset_password_with_invalid_token(self, client) -> None:
        response = client.post(
            "/api/v1/auth/reset-password",
            json={"token": "not-a-token", "new_password": "N3w!passwd"},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Invalid or expired reset token"

    def test_reset_password_flow(self, client, db_session, test_user) -> None:
        from inkwell.services.auth_service import AuthService

        _, token = AuthService(db_session).forgot_password(test_user.email)
        assert token is not None

        response = client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": "N3w!passwd"},
        )
        assert response.status_code == status.HTTP_200_OK

        login = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.username, "password": "N3w!passwd"},
        )
        assert login.status_code == status.HTTP_200_OK

        again = client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": "An0ther!pw"},
        )
        assert again.status_code == status.HTTP_400_BAD_REQUEST


def test_me_requires_authentication(client) -> None:
    response = client.get("/api/v1/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_me_returns_current_user(client, test_user, auth_token) -> None:
    response = client.get("/api/v1/auth/me", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == test_user.username
