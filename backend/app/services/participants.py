"""Chat participant lookup backed by the relational store."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from app.models import Chat, chat_participants
from inkwell.realtime.errors import ChatNotFoundError, LookupFailure


class SqlParticipantLookup:
    """Fetch the participant ids of a chat on every call."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def participant_ids(self, chat_id: int) -> Sequence[int]:
        return await run_in_threadpool(self._load, chat_id)

    def _load(self, chat_id: int) -> list[int]:
        try:
            with self._session_factory() as db:
                if db.get(Chat, chat_id) is None:
                    raise ChatNotFoundError(chat_id)
                stmt = (
                    select(chat_participants.c.user_id)
                    .where(chat_participants.c.chat_id == chat_id)
                    .order_by(chat_participants.c.user_id)
                )
                return list(db.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise LookupFailure(f"Participant lookup for chat {chat_id} failed") from exc
