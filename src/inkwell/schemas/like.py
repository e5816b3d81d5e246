"""Like-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from .common import PaginationMeta
from .user import AuthorSummary

LikeTarget = Literal["post", "comment"]


class LikeResponse(BaseModel):
    id: int
    user: AuthorSummary
    target_id: int
    target_type: LikeTarget
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LikeListResponse(BaseModel):
    likes: list[LikeResponse]
    meta: PaginationMeta


class LikeCheck(BaseModel):
    liked: bool
