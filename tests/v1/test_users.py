"""Tests for user profile endpoints."""

from __future__ import annotations

from fastapi import status

from tests.conftest import TEST_PASSWORD, make_post


class TestOwnProfile:
    def test_get_me(self, client, test_user, auth_token) -> None:
        response = client.get("/api/v1/users/me", headers=auth_token)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["email"] == test_user.email
        assert data["profile"]["display_name"] == "Alice"

    def test_update_profile(self, client, auth_token) -> None:
        response = client.patch(
            "/api/v1/users/me",
            json={"bio": "Writes about testing", "website": "https://alice.example.com"},
            headers=auth_token,
        )
        assert response.status_code == status.HTTP_200_OK
        profile = response.json()["profile"]
        assert profile["bio"] == "Writes about testing"
        assert profile["website"].startswith("https://alice.example.com")

    def test_update_rejects_invalid_url(self, client, auth_token) -> None:
        response = client.patch("/api/v1/users/me", json={"avatar": "not a url"}, headers=auth_token)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_profile_update_refreshes_cached_public_profile(self, client, test_user, auth_token) -> None:
        before = client.get(f"/api/v1/users/{test_user.id}").json()
        client.patch("/api/v1/users/me", json={"display_name": "Alice Liddell"}, headers=auth_token)
        after = client.get(f"/api/v1/users/{test_user.id}").json()

        assert before["profile"]["display_name"] == "Alice"
        assert after["profile"]["display_name"] == "Alice Liddell"


class TestChangePassword:
    def test_wrong_current_password(self, client, auth_token) -> None:
        response = client.post(
            "/api/v1/users/me/change-password",
            json={"current_password": "Wr0ng!pass", "new_password": "N3w!passwd"},
            headers=auth_token,
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["message"] == "Current password is incorrect"

    def test_change_password_revokes_refresh_tokens(self, client, test_user, auth_token) -> None:
        login = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.username, "password": TEST_PASSWORD},
        ).json()

        response = client.post(
            "/api/v1/users/me/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "N3w!passwd"},
            headers=auth_token,
        )
        assert response.status_code == status.HTTP_200_OK

        refresh = client.post("/api/v1/auth/refresh", json={"refresh_token": login["refresh_token"]})
        assert refresh.status_code == status.HTTP_401_UNAUTHORIZED

        old = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.username, "password": TEST_PASSWORD},
        )
        new = client.post(
            "/api/v1/auth/login",
            json={"identifier": test_user.username, "password": "N3w!passwd"},
        )
        assert old.status_code == status.HTTP_401_UNAUTHORIZED
        assert new.status_code == status.HTTP_200_OK


class TestPublicProfiles:
    def test_public_profile_hides_email(self, client, test_user) -> None:
        response = client.get(f"/api/v1/users/{test_user.id}")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["username"] == test_user.username
        assert "email" not in data

    def test_by_username(self, client, test_user) -> None:
        response = client.get(f"/api/v1/users/by-username/{test_user.username}")
        assert response.json()["id"] == test_user.id

    def test_unknown_user(self, client) -> None:
        response = client.get("/api/v1/users/9999")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["message"] == "User not found"

    def test_user_posts_lists_only_published(self, client, db_session, test_user) -> None:
        make_post(db_session, test_user, title="Public Work")
        make_post(db_session, test_user, title="Secret Draft", status="draft")

        response = client.get(f"/api/v1/users/{test_user.id}/posts")
        assert [post["title"] for post in response.json()["posts"]] == ["Public Work"]

    def test_user_comments(self, client, test_post, other_user, other_auth_token) -> None:
        client.post(
            f"/api/v1/posts/{test_post.id}/comments",
            json={"content": "Hello from bob"},
            headers=other_auth_token,
        )
        response = client.get(f"/api/v1/users/{other_user.id}/comments")
        assert response.json()["meta"]["total"] == 1
        assert response.json()["comments"][0]["content"] == "Hello from bob"


class TestAdminUsers:
    def test_listing_requires_admin(self, client, auth_token) -> None:
        response = client.get("/api/v1/users", headers=auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_lists_users(self, client, test_user, admin_auth_token) -> None:
        response = client.get("/api/v1/users", headers=admin_auth_token)
        assert response.status_code == status.HTTP_200_OK
        usernames = {user["username"] for user in response.json()["users"]}
        assert {"alice", "admin"} <= usernames

    def test_admin_changes_role(self, client, test_user, admin_auth_token) -> None:
        response = client.patch(
            f"/api/v1/admin/users/{test_user.id}/role",
            json={"role": "author"},
            headers=admin_auth_token,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "author"

    def test_unknown_role_is_rejected(self, client, test_user, admin_auth_token) -> None:
        response = client.patch(
            f"/api/v1/admin/users/{test_user.id}/role",
            json={"role": "overlord"},
            headers=admin_auth_token,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
