from __future__ import annotations

from enum import Enum


class NotificationType(str, Enum):
    """Kinds of notifications delivered to users."""

    LIKE = "LIKE"
    COMMENT = "COMMENT"
    FOLLOW = "FOLLOW"
    MENTION = "MENTION"
    MESSAGE = "MESSAGE"
    SYSTEM = "SYSTEM"
    ACCOUNT_UPDATE = "ACCOUNT_UPDATE"
    SECURITY_ALERT = "SECURITY_ALERT"
    FEATURE_ANNOUNCEMENT = "FEATURE_ANNOUNCEMENT"
