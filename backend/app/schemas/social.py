"""Schemas for the social interactions that emit notifications."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LikeToggleResult(_CamelModel):
    liked: bool
    like_count: int = Field(..., ge=0)


class CommentCreate(BaseModel):
    """Payload for commenting on a poem."""

    content: constr(strip_whitespace=True, min_length=1, max_length=5000)


class CommentRead(_CamelModel):
    id: int
    poem_id: int
    user_id: int
    content: str
    created_at: datetime


class FollowResult(_CamelModel):
    success: bool = True
    is_following: bool
