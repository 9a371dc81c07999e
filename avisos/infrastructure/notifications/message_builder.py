"""Render notifications for each delivery channel."""

from __future__ import annotations

import html
import json
from datetime import datetime
from typing import Any

from avisos.config import get_settings
from avisos.domain.entities import Notification, NotificationKind, ReferenceModel, User

DEFAULT_TITLE = "🔔 Notificación"
INBOX_PATH = "/notificaciones"

KIND_TITLES: dict[NotificationKind, str] = {
    NotificationKind.TASK: "📝 Nueva Tarea",
    NotificationKind.SUBMISSION: "📤 Nueva Entrega",
    NotificationKind.GRADE: "⭐ Nueva Calificación",
    NotificationKind.FORUM: "💬 Nuevo Mensaje en Foro",
    NotificationKind.EVENT: "📅 Nuevo Evento",
    NotificationKind.SYSTEM: "🔔 Notificación del Sistema",
}

_REFERENCE_PATHS: dict[ReferenceModel, str] = {
    ReferenceModel.TASK: "/tareas/{id}",
    ReferenceModel.SUBMISSION: "/entregas/{id}",
    ReferenceModel.COURSE: "/cursos/{id}",
}
FORUM_PATH = "/foros/{id}"


def notification_title(notification: Notification) -> str:
    return KIND_TITLES.get(notification.kind, DEFAULT_TITLE)


def notification_path(notification: Notification) -> str:
    """Return the client route that shows the notification's source."""

    reference = notification.reference
    if reference is not None:
        template = _REFERENCE_PATHS.get(reference.model)
        return template.format(id=reference.id) if template else INBOX_PATH

    forum_id = notification.metadata.get("forum_id")
    if notification.kind is NotificationKind.FORUM and isinstance(forum_id, int):
        return FORUM_PATH.format(id=forum_id)
    return INBOX_PATH


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    reference = notification.reference
    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "kind": notification.kind.value,
        "message": notification.message,
        "priority": notification.priority.value,
        "read": notification.read,
        "created_at": _iso_or_none(notification.created_at),
        "reference": (
            {"model": reference.model.value, "id": reference.id} if reference else None
        ),
        "metadata": notification.metadata or {},
        "group_key": notification.group_key,
        "delivered": notification.delivery_flags(),
        "title": notification_title(notification),
        "url": notification_path(notification),
    }


def build_push_payload(notification: Notification) -> str:
    return json.dumps(
        {
            "title": notification_title(notification),
            "body": notification.message,
            "icon": "/icon-192x192.png",
            "badge": "/badge-72x72.png",
            "data": {
                "notification_id": notification.id,
                "kind": notification.kind.value,
                "url": notification_path(notification),
            },
        },
        ensure_ascii=False,
    )


def build_whatsapp_body(notification: Notification) -> str:
    return (
        f"🔔 *{notification_title(notification)}*\n\n"
        f"{notification.message}\n\n"
        "---\n"
        "_Notificación del Sistema Educativo_"
    )


def build_email_html(user: User, notification: Notification) -> str:
    """Return the HTML body of the notification email for ``user``."""

    title = html.escape(notification_title(notification))
    button = ""
    if notification.reference is not None:
        link = get_settings().frontend_url.rstrip("/") + notification_path(notification)
        button = (
            f'<a href="{html.escape(link, quote=True)}" class="button">Ver Detalles</a>'
        )
    year = datetime.now().year
    return (
        "<!DOCTYPE html>"
        '<html><head><meta charset="UTF-8"><style>'
        "body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }"
        ".container { max-width: 600px; margin: 0 auto; padding: 20px; }"
        ".header { background: #4F46E5; color: white; padding: 20px; text-align: center; "
        "border-radius: 8px 8px 0 0; }"
        ".content { background: #f9fafb; padding: 30px; border: 1px solid #e5e7eb; }"
        ".footer { background: #f3f4f6; padding: 15px; text-align: center; font-size: 12px; "
        "color: #6b7280; border-radius: 0 0 8px 8px; }"
        ".button { display: inline-block; background: #4F46E5; color: white; "
        "padding: 12px 24px; text-decoration: none; border-radius: 6px; margin-top: 20px; }"
        "</style></head><body>"
        '<div class="container">'
        f'<div class="header"><h1>{title}</h1></div>'
        '<div class="content">'
        f"<p>Hola <strong>{html.escape(user.name)}</strong>,</p>"
        f"<p>{html.escape(notification.message)}</p>"
        f"{button}"
        "</div>"
        '<div class="footer">'
        "<p>Este es un correo automático del Sistema Educativo. Por favor no responder.</p>"
        f"<p>&copy; {year} Sistema Educativo. Todos los derechos reservados.</p>"
        "</div></div></body></html>"
    )


def _iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


__all__ = [
    "KIND_TITLES",
    "build_email_html",
    "build_push_payload",
    "build_whatsapp_body",
    "notification_path",
    "notification_title",
    "serialize_notification",
]
