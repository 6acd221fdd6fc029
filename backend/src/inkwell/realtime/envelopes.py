"""Wire envelopes exchanged over live connections."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidEnvelopeError


class EnvelopeType(str, Enum):
    """Tags used on the wire."""

    NEW_MESSAGE = "NEW_MESSAGE"
    TYPING = "TYPING"
    READ_RECEIPT = "READ_RECEIPT"
    NEW_NOTIFICATION = "NEW_NOTIFICATION"
    ONLINE_USERS = "ONLINE_USERS"
    PING = "PING"
    PONG = "PONG"
    ERROR = "ERROR"


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


class NewMessageEnvelope(_Envelope):
    """A chat message relayed to every participant of ``chat_id``."""

    type: Literal["NEW_MESSAGE"]
    chat_id: int
    message: dict[str, Any] | None = None
    content: str | None = None

    @model_validator(mode="after")
    def ensure_body(self) -> "NewMessageEnvelope":
        if self.message is None and self.content is None:
            raise ValueError("NEW_MESSAGE requires 'message' or 'content'")
        return self


class TypingEnvelope(_Envelope):
    type: Literal["TYPING"]
    chat_id: int


class ReadReceiptEnvelope(_Envelope):
    type: Literal["READ_RECEIPT"]
    chat_id: int
    message_id: int


InboundEnvelope = Annotated[
    Union[NewMessageEnvelope, TypingEnvelope, ReadReceiptEnvelope],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundEnvelope)


def parse_inbound(payload: Any) -> NewMessageEnvelope | TypingEnvelope | ReadReceiptEnvelope:
    """Validate a decoded JSON frame into one of the inbound envelopes."""

    if not isinstance(payload, Mapping):
        raise InvalidEnvelopeError("Message payload must be a JSON object")
    try:
        return _inbound_adapter.validate_python(payload)
    except ValidationError as exc:
        raw_type = payload.get("type")
        if raw_type not in {
            EnvelopeType.NEW_MESSAGE.value,
            EnvelopeType.TYPING.value,
            EnvelopeType.READ_RECEIPT.value,
        }:
            raise InvalidEnvelopeError("Unsupported payload type") from exc
        raise InvalidEnvelopeError(f"Invalid {raw_type} payload") from exc


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


class ChatMessageEvent(_Envelope):
    type: Literal["NEW_MESSAGE"] = "NEW_MESSAGE"
    chat_id: int
    sender_id: int
    message: dict[str, Any]


class TypingEvent(_Envelope):
    type: Literal["TYPING"] = "TYPING"
    chat_id: int
    user_id: int


class ReadReceiptEvent(_Envelope):
    type: Literal["READ_RECEIPT"] = "READ_RECEIPT"
    chat_id: int
    message_id: int
    user_id: int


class NotificationEvent(_Envelope):
    type: Literal["NEW_NOTIFICATION"] = "NEW_NOTIFICATION"
    notification: dict[str, Any]


class OnlineUsersEvent(_Envelope):
    type: Literal["ONLINE_USERS"] = "ONLINE_USERS"
    users: list[int]


PING_FRAME: dict[str, str] = {"type": EnvelopeType.PING.value}
PONG_FRAME: dict[str, str] = {"type": EnvelopeType.PONG.value}


def error_frame(detail: str) -> dict[str, str]:
    return {"type": EnvelopeType.ERROR.value, "detail": detail}


def serialize_envelope(envelope: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    """Return the JSON-ready representation written to the socket."""

    if isinstance(envelope, BaseModel):
        return envelope.model_dump(mode="json", by_alias=True)
    return dict(envelope)


__all__ = [
    "EnvelopeType",
    "NewMessageEnvelope",
    "TypingEnvelope",
    "ReadReceiptEnvelope",
    "InboundEnvelope",
    "parse_inbound",
    "ChatMessageEvent",
    "TypingEvent",
    "ReadReceiptEvent",
    "NotificationEvent",
    "OnlineUsersEvent",
    "PING_FRAME",
    "PONG_FRAME",
    "error_frame",
    "serialize_envelope",
]
