"""Database models package."""

from .base import Base
from .enums import NotificationType
from .social import (
    Chat,
    Comment,
    Follow,
    Like,
    Notification,
    Poem,
    User,
    chat_participants,
)

__all__ = [
    "Base",
    "User",
    "Poem",
    "Comment",
    "Like",
    "Follow",
    "Chat",
    "chat_participants",
    "Notification",
    "NotificationType",
]
