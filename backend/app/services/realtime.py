"""Process-wide realtime services and their FastAPI lifecycle hooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_user_from_token
from app.config import Settings, get_settings
from app.database import SessionLocal
from app.models import User
from app.services.notification_store import SqlNotificationStore
from app.services.participants import SqlParticipantLookup
from inkwell.realtime import (
    AuthenticationFailure,
    ConnectionRegistry,
    LivenessMonitor,
    MessageRouter,
    NotificationDispatcher,
)


logger = logging.getLogger(__name__)


@dataclass
class RealtimeServices:
    """Owns the single registry instance and the components built around it."""

    registry: ConnectionRegistry
    monitor: LivenessMonitor
    router: MessageRouter
    dispatcher: NotificationDispatcher
    session_factory: sessionmaker[Session]

    async def authenticate(self, token: str | None) -> User:
        if not token:
            raise AuthenticationFailure("No authentication token provided")
        try:
            return await run_in_threadpool(self._load_user, token)
        except HTTPException as exc:
            raise AuthenticationFailure("Authentication failed") from exc

    def _load_user(self, token: str) -> User:
        with self.session_factory() as db:
            return get_user_from_token(token, db)


def build_realtime(session_factory: sessionmaker[Session], settings: Settings) -> RealtimeServices:
    registry = ConnectionRegistry(presence_broadcast=settings.realtime_presence_broadcast_enabled)
    monitor = LivenessMonitor(
        registry,
        interval_seconds=settings.realtime_heartbeat_interval_seconds,
        max_missed_probes=settings.realtime_max_missed_probes,
        backoff_base_seconds=settings.realtime_backoff_base_seconds,
        backoff_max_seconds=settings.realtime_backoff_max_seconds,
    )
    router = MessageRouter(registry, SqlParticipantLookup(session_factory))
    dispatcher = NotificationDispatcher(registry, SqlNotificationStore(session_factory))
    return RealtimeServices(
        registry=registry,
        monitor=monitor,
        router=router,
        dispatcher=dispatcher,
        session_factory=session_factory,
    )


realtime = build_realtime(SessionLocal, get_settings())


def get_realtime() -> RealtimeServices:
    return realtime


async def startup_realtime() -> None:
    await realtime.monitor.start()
    logger.info(
        "Liveness monitor started (interval=%ss)", realtime.monitor.interval
    )


async def shutdown_realtime() -> None:
    await realtime.monitor.stop()
