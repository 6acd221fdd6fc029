"""Live connection endpoint for chat envelopes and notifications."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, status
from fastapi.websockets import WebSocketDisconnect

from app.services.realtime import RealtimeServices, get_realtime
from inkwell.realtime import AuthenticationFailure, InvalidEnvelopeError, LiveConnection, safe_send_json
from inkwell.realtime.envelopes import PONG_FRAME, EnvelopeType, error_frame

router = APIRouter(tags=["ws"])

logger = logging.getLogger(__name__)


def _extract_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    return token or None


async def iter_text_frames(websocket: WebSocket) -> AsyncIterator[str]:
    """Yield inbound text frames until the peer disconnects."""

    while True:
        try:
            message = await websocket.receive()
        except (RuntimeError, WebSocketDisconnect):
            break
        if message["type"] == "websocket.disconnect":
            break
        text = message.get("text")
        if text is None:
            data = message.get("bytes") or b""
            text = data.decode("utf-8", errors="replace")
        yield text


async def _handle_frame(
    services: RealtimeServices,
    connection: LiveConnection,
    payload: Any,
) -> None:
    if isinstance(payload, dict):
        frame_type = str(payload.get("type", "")).upper()
        if frame_type == EnvelopeType.PING.value:
            await safe_send_json(connection.websocket, PONG_FRAME)
            return
        if frame_type == EnvelopeType.PONG.value:
            services.monitor.record_pong(connection)
            return

    try:
        await services.router.route(connection.user_id, payload)
    except InvalidEnvelopeError as exc:
        await safe_send_json(connection.websocket, error_frame(str(exc)))


@router.websocket("/ws")
async def websocket_realtime(
    websocket: WebSocket,
    services: RealtimeServices = Depends(get_realtime),
) -> None:
    """Authenticate, register and serve a user's live connection."""

    try:
        user = await services.authenticate(_extract_token(websocket))
    except AuthenticationFailure as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc))
        return

    user_id = user.id
    await websocket.accept()
    connection = await services.registry.register(user_id, websocket)
    logger.info("User %s connected", user_id)
    await services.registry.broadcast_online_users()

    try:
        async for raw_message in iter_text_frames(websocket):
            try:
                payload = json.loads(raw_message)
            except json.JSONDecodeError:
                await safe_send_json(websocket, error_frame("Invalid message format"))
                continue
            await _handle_frame(services, connection, payload)
    finally:
        # A superseded socket closing must not evict or penalise its replacement.
        removed = await services.registry.unregister(user_id, connection)
        logger.info("User %s disconnected", user_id)
        if removed:
            services.monitor.schedule_backoff(user_id)
            await services.registry.broadcast_online_users()
