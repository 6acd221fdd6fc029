"""Error taxonomy shared by the realtime components."""

from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime delivery errors."""


class AuthenticationFailure(RealtimeError):
    """Raised when a websocket handshake carries a missing or invalid credential."""


class LookupFailure(RealtimeError):
    """Raised when a fan-out target set cannot be resolved."""


class ChatNotFoundError(LookupFailure):
    """Raised when a chat identifier does not exist."""

    def __init__(self, chat_id: int) -> None:
        super().__init__(f"Chat {chat_id} not found")
        self.chat_id = chat_id


class PersistenceFailure(RealtimeError):
    """Raised when a durable write (e.g. a notification) fails."""


class InvalidEnvelopeError(RealtimeError):
    """Raised when an inbound frame does not match any known envelope."""


__all__ = [
    "RealtimeError",
    "AuthenticationFailure",
    "LookupFailure",
    "ChatNotFoundError",
    "PersistenceFailure",
    "InvalidEnvelopeError",
]
