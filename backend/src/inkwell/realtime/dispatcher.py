"""Persist-then-push delivery of user notifications."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Protocol

from app.monitoring.metrics import notifications_dispatched_total

from .envelopes import NotificationEvent
from .errors import PersistenceFailure
from .registry import ConnectionRegistry


logger = logging.getLogger(__name__)

SYSTEM_NOTIFICATION_TYPES = frozenset(
    {"SYSTEM", "ACCOUNT_UPDATE", "SECURITY_ALERT", "FEATURE_ANNOUNCEMENT"}
)


class NotificationStore(Protocol):
    """Durable storage for notifications.

    ``create`` returns the JSON-ready representation of the stored record and
    raises :class:`PersistenceFailure` when the write does not succeed.
    """

    async def create(
        self,
        *,
        kind: str,
        content: str,
        recipient_id: int,
        sender_id: int | None = None,
        related: Mapping[str, int] | None = None,
        link: str | None = None,
    ) -> dict[str, Any]: ...

    async def existing_user_ids(self, user_ids: Iterable[int] | None = None) -> list[int]:
        """Return the ids that belong to stored users; ``None`` selects every user."""
        ...


class NotificationDispatcher:
    """Create a notification record and push it to the recipient when online."""

    def __init__(self, registry: ConnectionRegistry, store: NotificationStore) -> None:
        self._registry = registry
        self._store = store

    async def dispatch(
        self,
        kind: str,
        content: str,
        recipient_id: int,
        sender_id: int | None = None,
        related: Mapping[str, int] | None = None,
        link: str | None = None,
    ) -> dict[str, Any]:
        kind_value = getattr(kind, "value", kind)
        try:
            notification = await self._store.create(
                kind=kind_value,
                content=content,
                recipient_id=recipient_id,
                sender_id=sender_id,
                related=related,
                link=link,
            )
        except PersistenceFailure:
            logger.exception("Failed to persist %s notification for user %s", kind_value, recipient_id)
            raise

        delivered = False
        try:
            delivered = await self._registry.send(
                recipient_id, NotificationEvent(notification=notification)
            )
        except Exception:
            logger.warning(
                "Live push of notification %s to user %s failed",
                notification.get("id"),
                recipient_id,
                exc_info=True,
            )
        notifications_dispatched_total.labels(kind_value, "live" if delivered else "stored").inc()
        return notification

    async def dispatch_system(
        self,
        kind: str,
        title: str,
        content: str,
        recipient_ids: Iterable[int] | None = None,
        link: str | None = None,
    ) -> list[dict[str, Any]]:
        """Send a system notification to every listed user, or to all users.

        Ids that do not belong to a stored user are skipped.
        """

        kind_value = getattr(kind, "value", kind)
        if kind_value not in SYSTEM_NOTIFICATION_TYPES:
            raise ValueError(f"{kind_value} is not a system notification type")
        requested = None if recipient_ids is None else list(dict.fromkeys(recipient_ids))
        recipients = await self._store.existing_user_ids(requested)
        if requested is not None and len(recipients) < len(requested):
            logger.info(
                "Skipping %s unknown recipients of %s notification",
                len(requested) - len(recipients),
                kind_value,
            )
        body = f"{title}\n{content}"
        return [
            await self.dispatch(kind_value, body, recipient_id, link=link)
            for recipient_id in recipients
        ]


__all__ = ["NotificationDispatcher", "NotificationStore", "SYSTEM_NOTIFICATION_TYPES"]
