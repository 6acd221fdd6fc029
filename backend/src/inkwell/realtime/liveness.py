"""Periodic liveness probing of registered connections."""

from __future__ import annotations

import asyncio
import logging

from app.monitoring.metrics import realtime_liveness_terminations_total

from .registry import ConnectionRegistry, LiveConnection


logger = logging.getLogger(__name__)

LIVENESS_CLOSE_CODE = 1001
LIVENESS_CLOSE_REASON = "Liveness probe timeout"


class LivenessMonitor:
    """Probe every tracked connection on a fixed cadence and evict dead ones.

    Each tick a connection that answered since the previous tick is marked
    not-alive and probed again. A connection that is still not-alive counts
    as a missed cycle for its user; once the user's counter has reached
    ``max_missed_probes`` the next miss terminates the connection.

    A pong only restores the alive flag. The miss counter is cleared solely
    by a fresh registration, so intermittent pong loss accumulates across
    alive periods.

    Counters of users that have neither a tracked connection nor a pending
    backoff timer are dropped at the end of each cycle.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        interval_seconds: float = 30.0,
        max_missed_probes: int = 5,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 10.0,
    ) -> None:
        self._registry = registry
        self._state = registry.reconnect_state
        self._interval = float(interval_seconds)
        self._max_missed = int(max_missed_probes)
        self._backoff_base = float(backoff_base_seconds)
        self._backoff_max = float(backoff_max_seconds)
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="realtime-liveness-monitor")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
                raise
            except Exception:
                logger.exception("Liveness cycle failed")

    async def tick(self) -> list[int]:
        """Run one probe cycle and return the user ids whose connection was terminated."""

        terminated: list[int] = []
        for connection in self._registry.connections():
            if connection.is_alive:
                connection.is_alive = False
                await connection.probe()
                continue

            user_id = connection.user_id
            if self._state.get(user_id) >= self._max_missed:
                await self.terminate(connection)
                terminated.append(user_id)
                continue
            missed = self._state.increment(user_id)
            logger.debug("User %s missed liveness probe (%s/%s)", user_id, missed, self._max_missed)
            await connection.probe()
        self._state.prune(conn.user_id for conn in self._registry.connections())
        return terminated

    def record_pong(self, connection: LiveConnection) -> None:
        connection.mark_alive()

    async def terminate(self, connection: LiveConnection) -> None:
        user_id = connection.user_id
        logger.info("Terminating unresponsive connection for user %s", user_id)
        try:
            await connection.terminate(LIVENESS_CLOSE_CODE, LIVENESS_CLOSE_REASON)
        finally:
            await self._registry.unregister(user_id, connection)
            self._state.reset(user_id)
            realtime_liveness_terminations_total.inc()

    def backoff_delay(self, attempts: int) -> float:
        return min(self._backoff_base * (2 ** attempts), self._backoff_max)

    def schedule_backoff(self, user_id: int) -> float | None:
        """Record a disconnect: bump the reconnect counter after an exponential delay."""

        attempts = self._state.get(user_id)
        if attempts >= self._max_missed:
            return None
        delay = self.backoff_delay(attempts)
        self._state.schedule(user_id, delay, lambda: self._state.set(user_id, attempts + 1))
        return delay


__all__ = ["LivenessMonitor", "LIVENESS_CLOSE_CODE", "LIVENESS_CLOSE_REASON"]
