"""Application service helpers."""

from .notification_store import SqlNotificationStore, serialize_notification
from .participants import SqlParticipantLookup
from .realtime import (
    RealtimeServices,
    build_realtime,
    get_realtime,
    shutdown_realtime,
    startup_realtime,
)

__all__ = [
    "SqlNotificationStore",
    "SqlParticipantLookup",
    "serialize_notification",
    "RealtimeServices",
    "build_realtime",
    "get_realtime",
    "startup_realtime",
    "shutdown_realtime",
]
