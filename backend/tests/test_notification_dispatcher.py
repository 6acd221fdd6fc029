"""Persist-then-push notification delivery."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import pytest

from app.models import NotificationType
from app.monitoring.metrics import notifications_dispatched_total
from inkwell.realtime import ConnectionRegistry, NotificationDispatcher, PersistenceFailure


class MemoryStore:
    def __init__(self, *, fail: bool = False, users: Iterable[int] = (1, 2, 3)) -> None:
        self.created: list[dict[str, Any]] = []
        self.fail = fail
        self.users = list(users)

    async def existing_user_ids(self, user_ids: Iterable[int] | None = None) -> list[int]:
        if user_ids is None:
            return sorted(self.users)
        return [user_id for user_id in user_ids if user_id in self.users]

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
        if self.fail:
            raise PersistenceFailure("database unavailable")
        notification = {
            "id": len(self.created) + 1,
            "type": kind,
            "content": content,
            "recipientId": recipient_id,
            "senderId": sender_id,
            "link": link,
            "isRead": False,
            **{key: value for key, value in (related or {}).items()},
        }
        self.created.append(notification)
        return notification


@pytest.mark.anyio("asyncio")
async def test_offline_recipient_gets_stored_notification_only():
    store = MemoryStore()
    dispatcher = NotificationDispatcher(ConnectionRegistry(), store)

    notification = await dispatcher.dispatch(
        NotificationType.LIKE,
        'Bob liked your poem "Dawn"',
        recipient_id=1,
        sender_id=2,
        related={"poem_id": 5},
        link="/poem/5",
    )

    assert store.created == [notification]
    assert notification["type"] == "LIKE"
    assert notifications_dispatched_total.value("LIKE", "stored") == 1


@pytest.mark.anyio("asyncio")
async def test_online_recipient_receives_the_stored_record(make_socket):
    registry = ConnectionRegistry()
    socket = make_socket()
    await registry.register(1, socket)
    dispatcher = NotificationDispatcher(registry, MemoryStore())

    notification = await dispatcher.dispatch("FOLLOW", "Bob started following you", 1, sender_id=2)

    assert socket.sent == [{"type": "NEW_NOTIFICATION", "notification": notification}]
    assert notifications_dispatched_total.value("FOLLOW", "live") == 1


@pytest.mark.anyio("asyncio")
async def test_push_failure_is_logged_and_swallowed(make_socket, monkeypatch, caplog):
    registry = ConnectionRegistry()
    await registry.register(1, make_socket())
    store = MemoryStore()
    dispatcher = NotificationDispatcher(registry, store)

    async def exploding_send(user_id, envelope):
        raise ConnectionError("boom")

    monkeypatch.setattr(registry, "send", exploding_send)

    with caplog.at_level(logging.WARNING):
        notification = await dispatcher.dispatch("COMMENT", "New comment", 1)

    assert store.created == [notification]
    assert "Live push of notification 1 to user 1 failed" in caplog.text
    assert notifications_dispatched_total.value("COMMENT", "stored") == 1


@pytest.mark.anyio("asyncio")
async def test_persistence_failure_propagates_and_nothing_is_pushed(make_socket):
    registry = ConnectionRegistry()
    socket = make_socket()
    await registry.register(1, socket)
    dispatcher = NotificationDispatcher(registry, MemoryStore(fail=True))

    with pytest.raises(PersistenceFailure):
        await dispatcher.dispatch("LIKE", "x", 1)

    assert socket.sent == []
    assert notifications_dispatched_total.value("LIKE", "stored") == 0


@pytest.mark.anyio("asyncio")
async def test_system_notification_fans_out_to_unique_recipients():
    store = MemoryStore()
    dispatcher = NotificationDispatcher(ConnectionRegistry(), store)

    created = await dispatcher.dispatch_system(
        NotificationType.FEATURE_ANNOUNCEMENT,
        "Dark mode",
        "Try the new theme.",
        recipient_ids=[3, 1, 3],
        link="/settings",
    )

    assert [item["recipientId"] for item in created] == [3, 1]
    assert {item["content"] for item in created} == {"Dark mode\nTry the new theme."}
    assert all(item["senderId"] is None for item in created)


@pytest.mark.anyio("asyncio")
async def test_system_dispatch_rejects_user_generated_types():
    dispatcher = NotificationDispatcher(ConnectionRegistry(), MemoryStore())

    with pytest.raises(ValueError):
        await dispatcher.dispatch_system("LIKE", "t", "c", [1])


@pytest.mark.anyio("asyncio")
async def test_system_notification_skips_unknown_recipients():
    store = MemoryStore(users=[1, 2])
    dispatcher = NotificationDispatcher(ConnectionRegistry(), store)

    created = await dispatcher.dispatch_system("SYSTEM", "Maintenance", "Tonight at 22:00", [1, 999, 2])

    assert [item["recipientId"] for item in created] == [1, 2]
    assert len(store.created) == 2


@pytest.mark.anyio("asyncio")
async def test_system_notification_without_recipients_reaches_every_user(make_socket):
    registry = ConnectionRegistry()
    socket = make_socket()
    await registry.register(2, socket)
    dispatcher = NotificationDispatcher(registry, MemoryStore(users=[3, 1, 2]))

    created = await dispatcher.dispatch_system("SECURITY_ALERT", "New login", "From a new device")

    assert [item["recipientId"] for item in created] == [1, 2, 3]
    assert socket.types() == ["NEW_NOTIFICATION"]
    assert notifications_dispatched_total.value("SECURITY_ALERT", "live") == 1
    assert notifications_dispatched_total.value("SECURITY_ALERT", "stored") == 2
