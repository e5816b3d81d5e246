"""View tracking and per-post analytics schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

AnalyticsRange = Literal["day", "week", "month", "year", "all"]


class TrackView(BaseModel):
    """Body of a view-tracking call; every field is optional."""

    session_id: str | None = Field(None, min_length=1, max_length=64)
    referrer: str | None = Field(None, max_length=500)
    duration: int | None = Field(None, ge=0, description="Seconds spent on the page")


class DailyViews(BaseModel):
    date: str
    views: int


class ReferrerCount(BaseModel):
    referrer: str
    count: int


class DeviceStats(BaseModel):
    desktop: int = 0
    mobile: int = 0
    tablet: int = 0


class PostAnalytics(BaseModel):
    """Traffic and engagement for one post over the requested window."""

    post_id: int
    title: str
    range: AnalyticsRange
    start: datetime
    end: datetime
    total_views: int
    unique_views: int
    avg_duration: int
    engagement_rate: int
    likes_count: int
    comments_count: int
    views_over_time: list[DailyViews]
    top_referrers: list[ReferrerCount]
    device_stats: DeviceStats
