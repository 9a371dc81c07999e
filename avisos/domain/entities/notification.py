"""Domain entity representing a user notification."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Iterable

from avisos.domain.exceptions import ValidationError

MESSAGE_MAX_LENGTH = 500
GROUP_KEY_MAX_LENGTH = 120


class NotificationKind(str, enum.Enum):
    TASK = "task"
    SUBMISSION = "submission"
    GRADE = "grade"
    FORUM = "forum"
    EVENT = "event"
    SYSTEM = "system"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DeliveryChannel(str, enum.Enum):
    REALTIME = "realtime"
    PUSH = "push"
    WHATSAPP = "whatsapp"
    EMAIL = "email"


class ReferenceModel(str, enum.Enum):
    """Entities a notification can deep-link to."""

    TASK = "task"
    SUBMISSION = "submission"
    COURSE = "course"
    MODULE = "module"
    USER = "user"


@dataclass(frozen=True)
class NotificationReference:
    """Pointer to the entity that originated a notification."""

    model: ReferenceModel
    id: int


@dataclass
class Notification:
    """Message delivered to exactly one recipient."""

    id: int | None
    recipient_id: int
    kind: NotificationKind
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    read: bool = False
    created_at: datetime | None = None
    reference: NotificationReference | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    group_key: str | None = None
    delivered_realtime: bool = False
    delivered_push: bool = False
    delivered_whatsapp: bool = False
    delivered_email: bool = False

    def delivery_flags(self) -> dict[str, bool]:
        """Return the per-channel delivery flags keyed by channel name."""

        return {
            DeliveryChannel.REALTIME.value: self.delivered_realtime,
            DeliveryChannel.PUSH.value: self.delivered_push,
            DeliveryChannel.WHATSAPP.value: self.delivered_whatsapp,
            DeliveryChannel.EMAIL.value: self.delivered_email,
        }


@dataclass(frozen=True)
class NotificationPage:
    """A page of notifications plus the recipient's counters."""

    items: list[Notification]
    total: int
    unread: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def parse_kind(value: NotificationKind | str | None) -> NotificationKind:
    """Return ``value`` as a :class:`NotificationKind` or raise ``ValidationError``."""

    try:
        return NotificationKind(value)
    except ValueError as exc:
        allowed = ", ".join(kind.value for kind in NotificationKind)
        raise ValidationError(
            f"'{value}' no es un tipo válido. Valores permitidos: {allowed}"
        ) from exc


def parse_priority(value: NotificationPriority | str | None) -> NotificationPriority:
    """Return ``value`` as a :class:`NotificationPriority` or raise ``ValidationError``."""

    try:
        return NotificationPriority(value)
    except ValueError as exc:
        allowed = ", ".join(priority.value for priority in NotificationPriority)
        raise ValidationError(
            f"'{value}' no es una prioridad válida. Valores permitidos: {allowed}"
        ) from exc


def parse_channels(values: Iterable[DeliveryChannel | str]) -> list[DeliveryChannel]:
    """Return unique channels in input order or raise ``ValidationError``."""

    channels: list[DeliveryChannel] = []
    for value in values:
        try:
            channel = DeliveryChannel(value)
        except ValueError as exc:
            raise ValidationError(f"'{value}' no es un canal válido") from exc
        if channel not in channels:
            channels.append(channel)
    return channels


def validate_notification(notification: Notification) -> Notification:
    """Return a normalized copy of ``notification`` ready to be stored.

    Enumerations are coerced, the message is stripped and checked against
    :data:`MESSAGE_MAX_LENGTH`, and the recipient must be a positive id.
    """

    recipient_id = notification.recipient_id
    if isinstance(recipient_id, bool) or not isinstance(recipient_id, int) or recipient_id <= 0:
        raise ValidationError("El ID del usuario es obligatorio")

    message = notification.message.strip() if isinstance(notification.message, str) else ""
    if not message:
        raise ValidationError("El mensaje es obligatorio")
    if len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"El mensaje no puede exceder {MESSAGE_MAX_LENGTH} caracteres"
        )

    reference = notification.reference
    if reference is not None:
        try:
            reference = NotificationReference(
                model=ReferenceModel(reference.model), id=int(reference.id)
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError("La referencia de la notificación no es válida") from exc

    metadata = notification.metadata if notification.metadata is not None else {}
    if not isinstance(metadata, dict):
        raise ValidationError("Los metadatos deben ser un objeto")

    group_key = notification.group_key
    if group_key is not None and not isinstance(group_key, str):
        raise ValidationError("La clave de agrupación debe ser texto")
    if group_key is not None and len(group_key) > GROUP_KEY_MAX_LENGTH:
        raise ValidationError(
            f"La clave de agrupación no puede exceder {GROUP_KEY_MAX_LENGTH} caracteres"
        )

    return replace(
        notification,
        kind=parse_kind(notification.kind),
        priority=parse_priority(notification.priority),
        message=message,
        reference=reference,
        metadata=_normalize_datetime_values(dict(metadata)),
    )


def _normalize_datetime_values(data: Any) -> Any:
    """Convert dates nested inside ``data`` into ISO strings for JSON storage."""

    if isinstance(data, (datetime, date)):
        return data.isoformat()
    if isinstance(data, dict):
        return {key: _normalize_datetime_values(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [_normalize_datetime_values(item) for item in data]
    return data


__all__ = [
    "DeliveryChannel",
    "GROUP_KEY_MAX_LENGTH",
    "MESSAGE_MAX_LENGTH",
    "Notification",
    "NotificationKind",
    "NotificationPage",
    "NotificationPriority",
    "NotificationReference",
    "ReferenceModel",
    "parse_channels",
    "parse_kind",
    "parse_priority",
    "validate_notification",
]
