"""SQLAlchemy persistence for notifications."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from app.models import Notification, NotificationType, User
from app.schemas import NotificationRead
from inkwell.realtime.errors import PersistenceFailure

RELATED_FIELDS = frozenset({"poem_id", "comment_id"})


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the camelCase JSON shape shared by HTTP responses and live pushes."""

    return NotificationRead.model_validate(notification).model_dump(mode="json", by_alias=True)


class SqlNotificationStore:
    """Create notification rows in short-lived sessions."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        *,
        kind: str,
        content: str,
        recipient_id: int,
        sender_id: int | None = None,
        related: Mapping[str, int] | None = None,
        link: str | None = None,
    ) -> dict[str, Any]:
        notification_type = NotificationType(kind)
        related_fields = dict(related or {})
        unknown = set(related_fields) - RELATED_FIELDS
        if unknown:
            raise ValueError(f"Unsupported related entities: {', '.join(sorted(unknown))}")
        return await run_in_threadpool(
            self._create,
            notification_type,
            content,
            recipient_id,
            sender_id,
            related_fields,
            link,
        )

    async def existing_user_ids(self, user_ids: Iterable[int] | None = None) -> list[int]:
        requested = None if user_ids is None else list(user_ids)
        return await run_in_threadpool(self._existing_user_ids, requested)

    def _existing_user_ids(self, requested: list[int] | None) -> list[int]:
        stmt = select(User.id).order_by(User.id)
        if requested is not None:
            if not requested:
                return []
            stmt = stmt.where(User.id.in_(requested))
        try:
            with self._session_factory() as db:
                found = list(db.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Could not resolve notification recipients") from exc
        if requested is None:
            return found
        known = set(found)
        return [user_id for user_id in requested if user_id in known]

    def _create(
        self,
        notification_type: NotificationType,
        content: str,
        recipient_id: int,
        sender_id: int | None,
        related_fields: dict[str, int],
        link: str | None,
    ) -> dict[str, Any]:
        with self._session_factory() as db:
            try:
                if db.get(User, recipient_id) is None:
                    raise PersistenceFailure(f"Recipient {recipient_id} does not exist")
                notification = Notification(
                    type=notification_type,
                    content=content,
                    recipient_id=recipient_id,
                    sender_id=sender_id,
                    link=link,
                    **related_fields,
                )
                db.add(notification)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceFailure(
                    f"Could not store {notification_type.value} notification for user {recipient_id}"
                ) from exc
            db.refresh(notification)
            return serialize_notification(notification)
