"""In-process registry of live user connections."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Set

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState
from pydantic import BaseModel

from app.monitoring.metrics import (
    realtime_connections,
    realtime_dropped_total,
    realtime_events_total,
)

from .envelopes import PING_FRAME, OnlineUsersEvent, serialize_envelope


logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Send JSON through *websocket*, returning False instead of raising on a closed socket."""

    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


@dataclass(eq=False)
class LiveConnection:
    """A physical websocket owned by the registry."""

    user_id: int
    websocket: WebSocket
    is_alive: bool = True
    connected_at: float = field(default_factory=time.monotonic)
    last_pong_at: float = field(default_factory=time.monotonic)

    @property
    def is_open(self) -> bool:
        return self.websocket.application_state == WebSocketState.CONNECTED

    def mark_alive(self) -> None:
        self.is_alive = True
        self.last_pong_at = time.monotonic()

    async def send_json(self, data: dict[str, Any]) -> bool:
        return await safe_send_json(self.websocket, data)

    async def probe(self) -> bool:
        return await self.send_json(PING_FRAME)

    async def terminate(self, code: int, reason: str) -> None:
        if not self.is_open:
            return
        try:
            await self.websocket.close(code=code, reason=reason)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Websocket for user %s already closed: %s", self.user_id, exc)


class ReconnectState:
    """Per-user counters of consecutive failed liveness cycles."""

    def __init__(self) -> None:
        self._attempts: Dict[int, int] = {}
        self._timers: Dict[int, asyncio.TimerHandle] = {}

    def get(self, user_id: int) -> int:
        return self._attempts.get(user_id, 0)

    def increment(self, user_id: int) -> int:
        attempts = self._attempts.get(user_id, 0) + 1
        self._attempts[user_id] = attempts
        return attempts

    def set(self, user_id: int, attempts: int) -> None:
        self._timers.pop(user_id, None)
        self._attempts[user_id] = attempts

    def schedule(
        self,
        user_id: int,
        delay: float,
        callback: Callable[[], None],
    ) -> None:
        self.cancel(user_id)
        loop = asyncio.get_running_loop()
        self._timers[user_id] = loop.call_later(delay, callback)

    def cancel(self, user_id: int) -> None:
        handle = self._timers.pop(user_id, None)
        if handle is not None:
            handle.cancel()

    def reset(self, user_id: int) -> None:
        self.cancel(user_id)
        self._attempts.pop(user_id, None)

    def pending(self, user_id: int) -> bool:
        return user_id in self._timers

    def prune(self, active_user_ids: Iterable[int]) -> int:
        """Drop counters of users with no tracked connection and no pending timer."""

        keep = set(active_user_ids) | set(self._timers)
        stale = [user_id for user_id in self._attempts if user_id not in keep]
        for user_id in stale:
            del self._attempts[user_id]
        return len(stale)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._attempts


class ConnectionRegistry:
    """Maps a user identity to their current live connection.

    Delivery is best effort: ``send`` writes a frame when the user's socket is
    open and silently drops it otherwise. Offline users discover persisted
    state on their next poll.
    """

    def __init__(self, *, presence_broadcast: bool = True) -> None:
        self._clients: Dict[int, LiveConnection] = {}
        self._connections: Set[LiveConnection] = set()
        self._lock = asyncio.Lock()
        self._presence_broadcast = presence_broadcast
        self.reconnect_state = ReconnectState()

    async def register(self, user_id: int, websocket: WebSocket) -> LiveConnection:
        connection = LiveConnection(user_id=user_id, websocket=websocket)
        async with self._lock:
            previous = self._clients.get(user_id)
            self._clients[user_id] = connection
            self._connections.add(connection)
            self.reconnect_state.reset(user_id)
            if previous is None:
                realtime_connections.inc()
        if previous is not None:
            logger.info("User %s opened a new connection; replacing the previous mapping", user_id)
        return connection

    async def unregister(self, user_id: int, connection: LiveConnection | None = None) -> bool:
        async with self._lock:
            if connection is not None:
                self._connections.discard(connection)
            current = self._clients.get(user_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                return False
            self._clients.pop(user_id, None)
            realtime_connections.dec()
            return True

    async def send(self, user_id: int, envelope: BaseModel | Mapping[str, Any]) -> bool:
        connection = self._clients.get(user_id)
        if connection is None or not connection.is_open:
            realtime_dropped_total.labels("offline").inc()
            return False
        payload = serialize_envelope(envelope)
        delivered = await connection.send_json(payload)
        if delivered:
            realtime_events_total.labels("push", "out", payload.get("type", "unknown")).inc()
        else:
            realtime_dropped_total.labels("closed").inc()
        return delivered

    def is_online(self, user_id: int) -> bool:
        return user_id in self._clients

    def connection_for(self, user_id: int) -> LiveConnection | None:
        return self._clients.get(user_id)

    def online_user_ids(self) -> list[int]:
        return sorted(self._clients)

    def connections(self) -> list[LiveConnection]:
        """Snapshot of every tracked physical connection, superseded ones included."""

        return list(self._connections)

    async def broadcast_online_users(self) -> None:
        if not self._presence_broadcast:
            return
        users = self.online_user_ids()
        event = OnlineUsersEvent(users=users)
        for user_id in users:
            await self.send(user_id, event)


__all__ = ["ConnectionRegistry", "LiveConnection", "ReconnectState", "safe_send_json"]
