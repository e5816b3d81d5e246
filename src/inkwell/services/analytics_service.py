"""Post view tracking and per-post traffic reports."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from inkwell.core.errors import BadRequestError, ForbiddenError
from inkwell.db.time import as_utc, utcnow
from inkwell.models import Post, PostView, User
from inkwell.schemas.analytics import (
    AnalyticsRange,
    DailyViews,
    DeviceStats,
    PostAnalytics,
    ReferrerCount,
    TrackView,
)
from inkwell.services.post_service import PostService

logger = logging.getLogger(__name__)

RANGE_SPANS: dict[str, timedelta] = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
TOP_REFERRERS = 5
USER_AGENT_LENGTH = 500


def resolve_window(
    range_: AnalyticsRange,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Return ``(start, end)``; an explicit pair of dates overrides ``range_``."""
    if (start_date is None) != (end_date is None):
        raise BadRequestError("start_date and end_date must be given together")
    if start_date is not None and end_date is not None:
        start, end = as_utc(start_date), as_utc(end_date)
        if start > end:
            raise BadRequestError("start_date must not be after end_date")
        return start, end

    end = utcnow()
    span = RANGE_SPANS.get(range_)
    return (end - span if span else EPOCH), end


def device_of(user_agent: str | None) -> str:
    agent = (user_agent or "").lower()
    if "mobile" in agent:
        return "mobile"
    if "tablet" in agent or "ipad" in agent:
        return "tablet"
    return "desktop"


def engagement_rate(likes: int, comments: int, views: int) -> int:
    """Likes and comments per hundred views, rounded."""
    if views == 0:
        return 0
    return round((likes + comments) / views * 100)


class AnalyticsService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.posts = PostService(db)

    def track_view(
        self,
        post_id: int,
        data: TrackView,
        *,
        viewer: User | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PostView:
        """Record a view, counting each session once per post per UTC day.

        A repeat from the same session only refreshes ``duration``. Callers
        without a session id get a fresh one, so each of their calls counts.
        """
        post = self.posts.get_visible(post_id, viewer)
        now = utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        existing = None
        if data.session_id:
            existing = (
                self.db.query(PostView)
                .filter(
                    PostView.post_id == post.id,
                    PostView.session_id == data.session_id,
                    PostView.viewed_at >= today,
                )
                .first()
            )
        if existing is not None:
            if data.duration is not None:
                existing.duration = data.duration
                self.db.commit()
            return existing

        view = PostView(
            post_id=post.id,
            user_id=viewer.id if viewer else None,
            session_id=data.session_id or uuid.uuid4().hex,
            ip_address=ip_address,
            user_agent=user_agent[:USER_AGENT_LENGTH] if user_agent else None,
            referrer=data.referrer,
            duration=data.duration or 0,
            viewed_at=now,
        )
        self.db.add(view)
        self.db.commit()
        self.db.refresh(view)
        logger.debug("Tracked view %s of post %s", view.session_id, post.id)
        return view

    def post_analytics(
        self,
        post_id: int,
        user: User,
        range_: AnalyticsRange = "month",
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> PostAnalytics:
        """Summarise tracked views of a post; only its author or an admin may look."""
        post: Post = self.posts.get(post_id)
        if post.author_id != user.id and not user.is_admin:
            raise ForbiddenError("You can only view analytics for your own posts")
        start, end = resolve_window(range_, start_date, end_date)

        views = (
            self.db.query(PostView)
            .filter(
                PostView.post_id == post.id,
                PostView.viewed_at >= start,
                PostView.viewed_at <= end,
            )
            .order_by(PostView.viewed_at.asc())
            .all()
        )
        total = len(views)
        per_day = Counter(as_utc(view.viewed_at).date().isoformat() for view in views)
        referrers = Counter(view.referrer for view in views if view.referrer)
        devices = Counter(device_of(view.user_agent) for view in views)

        return PostAnalytics(
            post_id=post.id,
            title=post.title,
            range=range_,
            start=start,
            end=end,
            total_views=total,
            unique_views=len({view.session_id for view in views}),
            avg_duration=round(sum(view.duration for view in views) / total) if total else 0,
            engagement_rate=engagement_rate(post.like_count, post.comment_count, total),
            likes_count=post.like_count,
            comments_count=post.comment_count,
            views_over_time=[
                DailyViews(date=day, views=count) for day, count in sorted(per_day.items())
            ],
            top_referrers=[
                ReferrerCount(referrer=referrer, count=count)
                for referrer, count in referrers.most_common(TOP_REFERRERS)
            ],
            device_stats=DeviceStats(**devices),
        )
