"""Tests for category endpoints."""

from __future__ import annotations

from fastapi import status

from tests.conftest import make_post


def _create(client, headers, **fields):
    return client.post("/api/v1/categories", json={"name": "Engineering", **fields}, headers=headers)


class TestCategoryWrites:
    def test_only_admins_may_create(self, client, auth_token) -> None:
        response = _create(client, auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_create_derives_slug(self, client, admin_auth_token) -> None:
        response = _create(client, admin_auth_token, name="Web Development", color="#3B82F6")
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["slug"] == "web-development"
        assert data["post_count"] == 0
        assert data["is_active"] is True

    def test_duplicate_name_is_case_insensitive(self, client, admin_auth_token) -> None:
        _create(client, admin_auth_token)
        response = _create(client, admin_auth_token, name="engineering", slug="eng")
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["message"] == "Category with this name already exists"

    def test_invalid_color(self, client, admin_auth_token) -> None:
        response = _create(client, admin_auth_token, color="blue")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_rename_updates_slug(self, client, admin_auth_token) -> None:
        category = _create(client, admin_auth_token).json()
        response = client.patch(
            f"/api/v1/categories/{category['id']}",
            json={"name": "Platform Engineering"},
            headers=admin_auth_token,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["slug"] == "platform-engineering"

    def test_delete(self, client, admin_auth_token) -> None:
        category = _create(client, admin_auth_token).json()
        response = client.delete(f"/api/v1/categories/{category['id']}", headers=admin_auth_token)
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get(f"/api/v1/categories/{category['id']}").status_code == 404

    def test_name_is_stored_as_given(self, client, admin_auth_token) -> None:
        response = _create(client, admin_auth_token, name="  machine learning ")
        assert response.json()["name"] == "machine learning"

    def test_delete_with_posts_leaves_the_posts_alone(
        self, client, db_session, test_user, admin_auth_token
    ) -> None:
        category = _create(client, admin_auth_token).json()
        post = make_post(db_session, test_user)

        response = client.delete(f"/api/v1/categories/{category['id']}", headers=admin_auth_token)
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get(f"/api/v1/posts/{post.slug}").json()["category"] == "Engineering"


class TestCategoryReads:
    def test_inactive_categories_are_hidden_by_default(self, client, admin_auth_token) -> None:
        _create(client, admin_auth_token, name="Visible")
        _create(client, admin_auth_token, name="Retired", is_active=False)

        active = client.get("/api/v1/categories").json()
        everything = client.get("/api/v1/categories", params={"active_only": False}).json()
        assert [c["name"] for c in active] == ["Visible"]
        assert {c["name"] for c in everything} == {"Visible", "Retired"}

    def test_lookup_by_slug(self, client, admin_auth_token) -> None:
        created = _create(client, admin_auth_token).json()
        response = client.get("/api/v1/categories/slug/engineering")
        assert response.json()["id"] == created["id"]

    def test_with_counts(self, client, db_session, test_user, admin_auth_token) -> None:
        _create(client, admin_auth_token)
        make_post(db_session, test_user, title="Counted")
        make_post(db_session, test_user, title="Not Counted", status="draft")

        (category,) = client.get("/api/v1/categories/with-counts").json()
        assert category["published_posts"] == 1
        assert category["post_count"] == 2
