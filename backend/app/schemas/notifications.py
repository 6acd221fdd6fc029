"""Schemas for notification payloads.

Notifications are serialized with camelCase keys, both in HTTP responses and
inside ``NEW_NOTIFICATION`` websocket envelopes.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.enums import NotificationType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class NotificationSender(_CamelModel):
    """Public details of the user who triggered a notification."""

    id: int
    name: str
    avatar: str | None = None


class NotificationRead(_CamelModel):
    """Serialized representation of a stored notification."""

    id: int
    type: NotificationType
    content: str
    is_read: bool = False
    link: str | None = None
    recipient_id: int
    sender_id: int | None = None
    poem_id: int | None = None
    comment_id: int | None = None
    created_at: datetime
    sender: NotificationSender | None = None


class Pagination(_CamelModel):
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)


class NotificationPage(_CamelModel):
    """Page of notifications, newest first."""

    notifications: list[NotificationRead]
    pagination: Pagination


class UnreadCount(_CamelModel):
    count: int = Field(..., ge=0)


class MarkAllReadResult(_CamelModel):
    success: bool = True
    updated: int = Field(0, ge=0)


class NotificationPreferences(_CamelModel):
    """E-mail and push toggles per notification category."""

    email_likes: bool
    email_comments: bool
    email_follows: bool
    push_likes: bool
    push_comments: bool
    push_follows: bool


class NotificationPreferencesUpdate(_CamelModel):
    """Partial update; omitted fields keep their current value."""

    email_likes: bool | None = None
    email_comments: bool | None = None
    email_follows: bool | None = None
    push_likes: bool | None = None
    push_comments: bool | None = None
    push_follows: bool | None = None
