"""Tests for view tracking and per-post analytics."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import status

from inkwell.core.errors import BadRequestError
from inkwell.db.time import utcnow
from inkwell.models import PostView
from inkwell.services.analytics_service import EPOCH, device_of, engagement_rate, resolve_window
from tests.conftest import make_post

MOBILE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Mobile/15E148"
IPAD_UA = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X)"
DESKTOP_UA = "Mozilla/5.0 (X11; Linux x86_64) Firefox/131.0"


def _track(client, post_id: int, headers=None, **body):
    return client.post(f"/api/v1/analytics/posts/{post_id}/track", json=body, headers=headers)


class TestTrackView:
    def test_anonymous_view_is_recorded(self, client, db_session, test_post) -> None:
        response = _track(client, test_post.id, referrer="https://news.example.com")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "View tracked successfully"}

        (view,) = db_session.query(PostView).all()
        assert view.post_id == test_post.id
        assert view.user_id is None
        assert view.session_id
        assert view.referrer == "https://news.example.com"
        assert view.user_agent == "testclient"

    def test_body_is_optional(self, client, db_session, test_post) -> None:
        response = client.post(f"/api/v1/analytics/posts/{test_post.id}/track")
        assert response.status_code == status.HTTP_200_OK
        assert db_session.query(PostView).count() == 1

    def test_calls_without_a_session_each_count(self, client, db_session, test_post) -> None:
        _track(client, test_post.id)
        _track(client, test_post.id)
        assert db_session.query(PostView).count() == 2

    def test_session_counts_once_per_day_and_updates_duration(
        self, client, db_session, test_post
    ) -> None:
        _track(client, test_post.id, session_id="reader-1", duration=10)
        _track(client, test_post.id, session_id="reader-1", duration=45)
        _track(client, test_post.id, session_id="reader-1")

        (view,) = db_session.query(PostView).all()
        db_session.refresh(view)
        assert view.duration == 45

    def test_signed_in_viewer_is_attributed(
        self, client, db_session, test_post, other_user, other_auth_token
    ) -> None:
        _track(client, test_post.id, headers=other_auth_token, session_id="bob-tab")
        (view,) = db_session.query(PostView).all()
        assert view.user_id == other_user.id

    def test_unknown_post(self, client) -> None:
        response = _track(client, 9999)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["message"] == "Post not found"

    def test_drafts_are_only_tracked_for_their_author(
        self, client, db_session, test_user, auth_token
    ) -> None:
        draft = make_post(db_session, test_user, status="draft")
        assert _track(client, draft.id).status_code == status.HTTP_404_NOT_FOUND
        assert _track(client, draft.id, headers=auth_token).status_code == status.HTTP_200_OK

    def test_negative_duration_fails_validation(self, client, test_post) -> None:
        response = _track(client, test_post.id, duration=-1)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Validation failed"


class TestPostAnalytics:
    @pytest.fixture()
    def traffic(self, client, db_session, test_post, other_auth_token) -> None:
        """Three views this week, one older view and a like."""
        views = [
            ("a", MOBILE_UA, "https://search.example.com", 10),
            ("b", IPAD_UA, "https://search.example.com", 20),
            ("c", DESKTOP_UA, None, 30),
        ]
        for session_id, agent, referrer, duration in views:
            _track(
                client,
                test_post.id,
                headers={"User-Agent": agent},
                session_id=session_id,
                referrer=referrer,
                duration=duration,
            )
        db_session.add(
            PostView(
                post_id=test_post.id,
                session_id="old",
                duration=0,
                viewed_at=utcnow() - timedelta(days=10),
            )
        )
        db_session.commit()
        client.post(f"/api/v1/posts/{test_post.id}/like", headers=other_auth_token)

    def test_author_sees_weekly_summary(self, client, test_post, traffic, auth_token) -> None:
        response = client.get(
            f"/api/v1/analytics/posts/{test_post.id}", params={"range": "week"}, headers=auth_token
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert data["post_id"] == test_post.id
        assert data["range"] == "week"
        assert data["total_views"] == 3
        assert data["unique_views"] == 3
        assert data["avg_duration"] == 20
        assert data["likes_count"] == 1
        assert data["engagement_rate"] == 33
        assert data["device_stats"] == {"desktop": 1, "mobile": 1, "tablet": 1}
        assert data["top_referrers"] == [{"referrer": "https://search.example.com", "count": 2}]
        assert data["views_over_time"] == [
            {"date": utcnow().date().isoformat(), "views": 3}
        ]

    def test_default_range_is_a_month(self, client, test_post, traffic, auth_token) -> None:
        data = client.get(f"/api/v1/analytics/posts/{test_post.id}", headers=auth_token).json()
        assert data["range"] == "month"
        assert data["total_views"] == 4
        assert data["unique_views"] == 4

    def test_requires_authentication(self, client, test_post) -> None:
        response = client.get(f"/api/v1/analytics/posts/{test_post.id}")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_only_author_or_admin(
        self, client, test_post, other_auth_token, admin_auth_token
    ) -> None:
        denied = client.get(f"/api/v1/analytics/posts/{test_post.id}", headers=other_auth_token)
        assert denied.status_code == status.HTTP_403_FORBIDDEN
        assert (
            denied.json()["error"]["message"] == "You can only view analytics for your own posts"
        )

        allowed = client.get(f"/api/v1/analytics/posts/{test_post.id}", headers=admin_auth_token)
        assert allowed.status_code == status.HTTP_200_OK
        assert allowed.json()["total_views"] == 0
        assert allowed.json()["engagement_rate"] == 0

    def test_custom_window_needs_both_dates(self, client, test_post, auth_token) -> None:
        response = client.get(
            f"/api/v1/analytics/posts/{test_post.id}",
            params={"start_date": "2026-01-01T00:00:00Z"},
            headers=auth_token,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "start_date and end_date must be given together"


def test_resolve_window() -> None:
    start, end = resolve_window("all")
    assert start == EPOCH
    start, end = resolve_window("day")
    assert end - start == timedelta(days=1)
    with pytest.raises(BadRequestError):
        resolve_window("all", utcnow(), utcnow() - timedelta(days=1))


@pytest.mark.parametrize(
    ("agent", "device"),
    [(MOBILE_UA, "mobile"), (IPAD_UA, "tablet"), (DESKTOP_UA, "desktop"), (None, "desktop")],
)
def test_device_of(agent, device) -> None:
    assert device_of(agent) == device


def test_engagement_rate() -> None:
    assert engagement_rate(1, 2, 0) == 0
    assert engagement_rate(1, 2, 4) == 75
