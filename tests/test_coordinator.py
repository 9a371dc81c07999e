"""Tests for store-then-fan-out delivery."""

from __future__ import annotations

import asyncio
import logging
import threading
import types

import pytest

from avisos.config import get_settings
from avisos.domain.entities import DeliveryChannel, Notification, User
from avisos.domain.exceptions import ValidationError
from avisos.infrastructure import database
from avisos.infrastructure import email as email_module
from avisos.infrastructure.models import NotificationModel
from avisos.infrastructure.notifications import (
    ChannelPolicy,
    DeliveryCoordinator,
    NotificationConnectionManager,
    build_coordinator,
)
from avisos.infrastructure.notifications.channels import (
    ChannelSender,
    DeliveryOutcome,
    OutcomeStatus,
)
from avisos.infrastructure.notifications.channels import push as push_module
from avisos.infrastructure.notifications.channels import whatsapp as whatsapp_module
from avisos.infrastructure.repositories import (
    NotificationRepository,
    PushSubscriptionRepository,
)


class RecordingSender(ChannelSender):
    """Channel double that records calls and behaves as instructed."""

    def __init__(self, channel: DeliveryChannel, behaviour: str = "deliver") -> None:
        self.channel = channel
        super().__init__()
        self.behaviour = behaviour
        self.calls: list[int] = []

    async def send(self, user: User, notification: Notification) -> DeliveryOutcome:
        self.calls.append(notification.id)
        if self.behaviour == "raise":
            raise RuntimeError(f"{self.channel.value} transport down")
        if self.behaviour == "hang":
            await asyncio.sleep(5)
        if self.behaviour == "skip":
            return self.skipped("no aplica")
        return self.delivered()


def _coordinator(**behaviours: str) -> tuple[DeliveryCoordinator, dict[DeliveryChannel, RecordingSender]]:
    senders = {
        channel: RecordingSender(channel, behaviours.get(channel.value, "deliver"))
        for channel in DeliveryChannel
    }
    coordinator = DeliveryCoordinator(
        senders.values(),
        session_factory=database.SessionLocal,
        channel_timeout=0.2,
    )
    return coordinator, senders


def _stored(notification_id: int) -> Notification:
    with database.SessionLocal() as session:
        return NotificationRepository(session).get(notification_id)


@pytest.mark.asyncio
async def test_dispatch_returns_stored_record_before_delivery(make_user) -> None:
    user = make_user()
    coordinator, _ = _coordinator()

    notification = coordinator.dispatch(user.id, "task", "Nueva tarea", "critical")

    assert notification.id is not None
    assert not any(notification.delivery_flags().values())
    await coordinator.drain()
    assert all(_stored(notification.id).delivery_flags().values())


@pytest.mark.asyncio
async def test_low_priority_only_attempts_realtime(make_user) -> None:
    user = make_user()
    coordinator, senders = _coordinator(realtime="skip")

    notification = coordinator.dispatch(user.id, "system", "Aviso", "low")
    await coordinator.drain()

    assert senders[DeliveryChannel.REALTIME].calls == [notification.id]
    for channel in (DeliveryChannel.PUSH, DeliveryChannel.WHATSAPP, DeliveryChannel.EMAIL):
        assert senders[channel].calls == []
    stored = _stored(notification.id)
    assert stored is not None
    assert not any(stored.delivery_flags().values())


@pytest.mark.asyncio
async def test_failing_channel_does_not_affect_the_others(make_user, caplog) -> None:
    user = make_user()
    coordinator, _ = _coordinator(email="raise")

    with caplog.at_level(logging.WARNING):
        notification = coordinator.dispatch(user.id, "grade", "Calificación publicada", "high")
        await coordinator.drain()

    assert _stored(notification.id).delivery_flags() == {
        "realtime": True,
        "push": True,
        "whatsapp": False,
        "email": False,
    }
    assert f"Delivery of notification {notification.id} failed on email" in caplog.text


@pytest.mark.asyncio
async def test_slow_channel_times_out_as_failed(make_user) -> None:
    user = make_user()
    coordinator, _ = _coordinator(push="hang")
    with database.SessionLocal() as session:
        notification = NotificationRepository(session).create(
            Notification(id=None, recipient_id=user.id, kind="task", message="Tarea", priority="medium")
        )

    outcomes = await coordinator.fan_out(notification)

    assert outcomes[DeliveryChannel.REALTIME].delivered
    assert outcomes[DeliveryChannel.PUSH].status is OutcomeStatus.FAILED
    assert "sin respuesta" in outcomes[DeliveryChannel.PUSH].reason
    assert set(outcomes) == {DeliveryChannel.REALTIME, DeliveryChannel.PUSH}


@pytest.mark.asyncio
async def test_custom_policy_controls_selected_channels(make_user) -> None:
    user = make_user()
    senders = [RecordingSender(channel) for channel in DeliveryChannel]
    coordinator = DeliveryCoordinator(
        senders,
        policy=ChannelPolicy(
            {
                "low": [],
                "medium": ["realtime"],
                "high": ["realtime", "email"],
                "critical": ["realtime", "email", "whatsapp"],
            }
        ),
        session_factory=database.SessionLocal,
    )

    notification = coordinator.dispatch(user.id, "task", "Tarea", "high")
    await coordinator.drain()

    assert _stored(notification.id).delivery_flags() == {
        "realtime": True,
        "push": False,
        "whatsapp": False,
        "email": True,
    }


@pytest.mark.parametrize(
    ("recipient_offset", "kind", "message"),
    [
        (0, "task", ""),
        (0, "task", "x" * 501),
        (0, "party", "Hola"),
        (999, "task", "Hola"),
    ],
)
def test_dispatch_rejects_invalid_input_before_storing(
    session, make_user, recipient_offset, kind, message
) -> None:
    user = make_user()
    coordinator, senders = _coordinator()

    with pytest.raises(ValidationError):
        coordinator.dispatch(user.id + recipient_offset, kind, message)

    assert session.query(NotificationModel).count() == 0
    assert all(not sender.calls for sender in senders.values())


def test_dispatch_without_event_loop_delivers_inline(make_user) -> None:
    user = make_user()
    coordinator, senders = _coordinator()

    notification = coordinator.dispatch(user.id, "event", "Reunión de padres", "medium")

    assert senders[DeliveryChannel.PUSH].calls == [notification.id]
    assert _stored(notification.id).delivery_flags()["push"] is True


@pytest.mark.asyncio
async def test_dispatch_from_plain_thread_hands_fan_out_to_bound_loop(make_user) -> None:
    user = make_user()
    coordinator, senders = _coordinator(push="hang")
    coordinator.bind_loop(asyncio.get_running_loop())
    stored: list[Notification] = []

    def producer() -> None:
        stored.append(coordinator.dispatch(user.id, "event", "Salida pedagógica", "medium"))

    thread = threading.Thread(target=producer)
    thread.start()
    thread.join(timeout=1)

    # An inline fan-out would already have called every sender from this thread.
    assert not thread.is_alive()
    assert senders[DeliveryChannel.PUSH].calls == []
    await asyncio.sleep(0)
    await coordinator.drain()

    notification = stored[0]
    assert senders[DeliveryChannel.REALTIME].calls == [notification.id]
    assert _stored(notification.id).delivery_flags()["realtime"] is True


@pytest.mark.asyncio
async def test_critical_notification_reaches_online_user_everywhere(
    session, make_user, fake_websocket_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    user = make_user(phone="+573001112233")
    PushSubscriptionRepository(session).register(
        user_id=user.id, endpoint="https://push.example.com/x", p256dh="k", auth="a"
    )
    websocket = fake_websocket_factory()
    manager = NotificationConnectionManager()
    await manager.connect(user.id, websocket)

    pushed: list[str] = []
    whatsapp_messages: list[dict] = []
    emails: list = []

    def fake_webpush(*, subscription_info, data, **_kwargs):
        pushed.append(data)

    class FakeMessages:
        def create(self, **kwargs):
            whatsapp_messages.append(kwargs)
            return types.SimpleNamespace(sid="SM1")

    class FakeSendGrid:
        def __init__(self, api_key: str) -> None:
            self.api_key = api_key

        def send(self, message):
            emails.append(message)
            return types.SimpleNamespace(status_code=202, body=None)

    class SendGridSettings:
        sendgrid_api_key = "SG.fake"
        sendgrid_sender = "avisos@example.com"

    monkeypatch.setattr(push_module, "webpush", fake_webpush)
    monkeypatch.setattr(
        whatsapp_module, "Client", lambda sid, token: types.SimpleNamespace(messages=FakeMessages())
    )
    monkeypatch.setattr(email_module, "get_settings", lambda: SendGridSettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", FakeSendGrid)

    settings = get_settings().model_copy(
        update={
            "vapid_private_key": "private-key",
            "twilio_account_sid": "AC1",
            "twilio_auth_token": "token",
            "twilio_whatsapp_number": "+14155238886",
        }
    )
    coordinator = build_coordinator(manager, settings, session_factory=database.SessionLocal)

    notification = coordinator.dispatch(
        user.id, "submission", "Nueva entrega recibida", "critical", reference=("submission", 4)
    )
    await coordinator.drain()

    assert _stored(notification.id).delivery_flags() == {
        "realtime": True,
        "push": True,
        "whatsapp": True,
        "email": True,
    }
    assert len(websocket.sent) == 1
    assert websocket.sent[0]["type"] == "notification.new"
    assert websocket.sent[0]["data"]["unread_count"] == 1
    assert len(pushed) == len(whatsapp_messages) == len(emails) == 1


@pytest.mark.asyncio
async def test_low_notification_to_offline_user_is_only_stored(make_user) -> None:
    user = make_user(phone="+573001112233")
    manager = NotificationConnectionManager()
    coordinator = build_coordinator(manager, get_settings(), session_factory=database.SessionLocal)

    notification = coordinator.dispatch(user.id, "forum", "Nuevo mensaje", "low")
    await coordinator.drain()
    outcomes = await coordinator.fan_out(notification)

    assert set(outcomes) == {DeliveryChannel.REALTIME}
    assert outcomes[DeliveryChannel.REALTIME].status is OutcomeStatus.SKIPPED
    with database.SessionLocal() as session:
        page = NotificationRepository(session).list_for_user(user.id)
    assert [item.id for item in page.items] == [notification.id]
    assert page.unread == 1
    assert not any(page.items[0].delivery_flags().values())
