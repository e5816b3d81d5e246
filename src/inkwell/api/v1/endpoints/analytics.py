# src/inkwell/api/v1/endpoints/analytics.py
"""View tracking and per-post analytics endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, Request

from inkwell.api.v1.dependencies import CurrentUserDep, OptionalUserDep, SessionDep
from inkwell.schemas.analytics import AnalyticsRange, PostAnalytics, TrackView
from inkwell.schemas.common import MessageResponse
from inkwell.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.post("/posts/{post_id}/track", response_model=MessageResponse)
async def track_view(
    post_id: int,
    request: Request,
    viewer: OptionalUserDep,
    db: SessionDep,
    payload: TrackView | None = None,
) -> MessageResponse:
    """Record a reader's view; repeat calls from one session update its duration."""
    AnalyticsService(db).track_view(
        post_id,
        payload or TrackView(),
        viewer=viewer,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return MessageResponse(message="View tracked successfully")


@router.get("/posts/{post_id}", response_model=PostAnalytics)
async def post_analytics(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    range_: AnalyticsRange = Query("month", alias="range"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
) -> PostAnalytics:
    return AnalyticsService(db).post_analytics(
        post_id, current_user, range_, start_date, end_date
    )
