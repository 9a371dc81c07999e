"""Tests for per-channel rendering of notifications."""

from __future__ import annotations

import json

import pytest

from avisos.domain.entities import (
    Notification,
    NotificationKind,
    NotificationReference,
    ReferenceModel,
    User,
)
from avisos.infrastructure.notifications import message_builder


def _notification(kind: NotificationKind, reference: NotificationReference | None = None) -> Notification:
    return Notification(
        id=11,
        recipient_id=2,
        kind=kind,
        message='La tarea "Mapa" <vence> mañana',
        reference=reference,
    )


@pytest.mark.parametrize(
    ("kind", "reference", "expected"),
    [
        (NotificationKind.TASK, NotificationReference(ReferenceModel.TASK, 4), "/tareas/4"),
        (NotificationKind.GRADE, NotificationReference(ReferenceModel.SUBMISSION, 8), "/entregas/8"),
        (NotificationKind.TASK, None, "/notificaciones"),
        (NotificationKind.SYSTEM, NotificationReference(ReferenceModel.USER, 2), "/notificaciones"),
        (NotificationKind.TASK, NotificationReference(ReferenceModel.COURSE, 5), "/cursos/5"),
        (NotificationKind.EVENT, NotificationReference(ReferenceModel.MODULE, 9), "/notificaciones"),
    ],
)
def test_notification_path(kind, reference, expected) -> None:
    assert message_builder.notification_path(_notification(kind, reference)) == expected


def test_forum_notifications_link_to_the_forum_from_metadata() -> None:
    notification = Notification(
        id=12,
        recipient_id=2,
        kind=NotificationKind.FORUM,
        message="Nuevo mensaje en Dudas",
        metadata={"forum_id": 6},
    )

    assert message_builder.notification_path(notification) == "/foros/6"


def test_push_payload_carries_title_and_link() -> None:
    notification = _notification(NotificationKind.TASK, NotificationReference(ReferenceModel.TASK, 4))

    payload = json.loads(message_builder.build_push_payload(notification))

    assert payload["title"] == "📝 Nueva Tarea"
    assert payload["body"] == notification.message
    assert payload["data"] == {"notification_id": 11, "kind": "task", "url": "/tareas/4"}


def test_whatsapp_body_uses_title_and_message() -> None:
    body = message_builder.build_whatsapp_body(_notification(NotificationKind.GRADE))

    assert body.startswith("🔔 *⭐ Nueva Calificación*")
    assert 'La tarea "Mapa" <vence> mañana' in body


def test_email_html_escapes_user_content_and_omits_button_without_reference() -> None:
    user = User(id=2, name="Ana & Luis", email="ana@example.com", role="padre")

    html_content = message_builder.build_email_html(user, _notification(NotificationKind.SYSTEM))

    assert "Ana &amp; Luis" in html_content
    assert "&lt;vence&gt;" in html_content
    assert "Ver Detalles" not in html_content
