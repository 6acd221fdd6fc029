"""Realtime delivery: connection registry, liveness, chat routing and notifications."""

from .dispatcher import NotificationDispatcher, NotificationStore  # noqa: F401
from .envelopes import EnvelopeType, parse_inbound  # noqa: F401
from .errors import (  # noqa: F401
    AuthenticationFailure,
    ChatNotFoundError,
    InvalidEnvelopeError,
    LookupFailure,
    PersistenceFailure,
    RealtimeError,
)
from .liveness import LivenessMonitor  # noqa: F401
from .registry import ConnectionRegistry, LiveConnection, safe_send_json  # noqa: F401
from .router import MessageRouter, ParticipantLookup  # noqa: F401

__all__ = [
    "ConnectionRegistry",
    "LiveConnection",
    "LivenessMonitor",
    "MessageRouter",
    "ParticipantLookup",
    "NotificationDispatcher",
    "NotificationStore",
    "EnvelopeType",
    "parse_inbound",
    "safe_send_json",
    "RealtimeError",
    "AuthenticationFailure",
    "LookupFailure",
    "ChatNotFoundError",
    "PersistenceFailure",
    "InvalidEnvelopeError",
]
