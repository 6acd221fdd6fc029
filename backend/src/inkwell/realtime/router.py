"""Routing of inbound chat envelopes to chat participants."""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from pydantic import BaseModel

from app.monitoring.metrics import realtime_dropped_total, realtime_events_total

from .envelopes import (
    ChatMessageEvent,
    NewMessageEnvelope,
    ReadReceiptEnvelope,
    ReadReceiptEvent,
    TypingEnvelope,
    TypingEvent,
    parse_inbound,
)
from .errors import LookupFailure
from .registry import ConnectionRegistry


logger = logging.getLogger(__name__)


class ParticipantLookup(Protocol):
    """Resolves the user ids taking part in a chat.

    Implementations raise :class:`LookupFailure` when the chat is unknown or
    the backing store fails.
    """

    async def participant_ids(self, chat_id: int) -> Sequence[int]: ...


class MessageRouter:
    """Interpret inbound envelopes and fan them out through the registry."""

    def __init__(self, registry: ConnectionRegistry, participants: ParticipantLookup) -> None:
        self._registry = registry
        self._participants = participants

    async def route(self, sender_id: int, payload: Any) -> int:
        """Route a decoded frame sent by *sender_id*.

        Returns the number of connections that received the outbound envelope.
        Raises :class:`InvalidEnvelopeError` for frames that are not envelopes.
        """

        envelope = parse_inbound(payload)
        realtime_events_total.labels("chat", "in", envelope.type).inc()

        if isinstance(envelope, NewMessageEnvelope):
            message = envelope.message if envelope.message is not None else {"content": envelope.content}
            event: BaseModel = ChatMessageEvent(
                chat_id=envelope.chat_id, sender_id=sender_id, message=message
            )
        elif isinstance(envelope, TypingEnvelope):
            event = TypingEvent(chat_id=envelope.chat_id, user_id=sender_id)
        elif isinstance(envelope, ReadReceiptEnvelope):
            event = ReadReceiptEvent(
                chat_id=envelope.chat_id, message_id=envelope.message_id, user_id=sender_id
            )
        else:  # pragma: no cover - the union is exhaustive
            return 0
        return await self.broadcast_to_chat(envelope.chat_id, event)

    async def broadcast_to_chat(self, chat_id: int, event: BaseModel) -> int:
        # Participants are fetched per envelope; membership may change between calls.
        try:
            participant_ids = await self._participants.participant_ids(chat_id)
        except LookupFailure as exc:
            realtime_dropped_total.labels("lookup").inc()
            logger.warning("Dropping envelope for chat %s: %s", chat_id, exc)
            return 0

        delivered = 0
        for participant_id in participant_ids:
            if await self._registry.send(participant_id, event):
                delivered += 1
        return delivered


__all__ = ["MessageRouter", "ParticipantLookup"]
