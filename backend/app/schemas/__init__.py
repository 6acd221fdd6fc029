"""Pydantic schemas for API payloads."""

from .notifications import (
    MarkAllReadResult,
    NotificationPage,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    NotificationRead,
    NotificationSender,
    Pagination,
    UnreadCount,
)
from .social import CommentCreate, CommentRead, FollowResult, LikeToggleResult

__all__ = [
    "NotificationRead",
    "NotificationSender",
    "NotificationPage",
    "Pagination",
    "UnreadCount",
    "MarkAllReadResult",
    "NotificationPreferences",
    "NotificationPreferencesUpdate",
    "LikeToggleResult",
    "CommentCreate",
    "CommentRead",
    "FollowResult",
]
