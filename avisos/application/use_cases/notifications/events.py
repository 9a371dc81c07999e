"""Helpers that turn school events into dispatched notifications."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from avisos.domain.entities import (
    Notification,
    NotificationKind,
    NotificationPriority,
    NotificationReference,
    ReferenceModel,
    User,
)
from avisos.domain.exceptions import PersistenceError, ValidationError
from avisos.infrastructure.notifications import DeliveryCoordinator
from avisos.utils import local_now

logger = logging.getLogger(__name__)


def _format_date(value: date | datetime | None) -> str:
    if value is None:
        return "sin fecha"
    return value.strftime("%d/%m/%Y")


def _dispatch_to_each(
    coordinator: DeliveryCoordinator,
    recipient_ids: Iterable[int],
    *,
    kind: NotificationKind,
    message: str,
    priority: NotificationPriority,
    reference: NotificationReference | None = None,
    metadata: dict[str, Any] | None = None,
    group_key: str | None = None,
) -> list[Notification]:
    """Dispatch one notification per unique recipient, logging individual failures."""

    created: list[Notification] = []
    seen: set[int] = set()
    for recipient_id in recipient_ids:
        if recipient_id in seen:
            continue
        seen.add(recipient_id)
        try:
            created.append(
                coordinator.dispatch(
                    recipient_id,
                    kind,
                    message,
                    priority,
                    reference=reference,
                    metadata=metadata,
                    group_key=group_key,
                )
            )
        except (ValidationError, PersistenceError) as exc:
            logger.error(
                "Could not notify user %s about %s: %s", recipient_id, kind.value, exc
            )
    return created


def notify_task_created(
    coordinator: DeliveryCoordinator,
    *,
    recipient_ids: Iterable[int],
    task_id: int,
    title: str,
    due_date: date | datetime | None,
    course_name: str,
    delivery_type: str | None = None,
) -> list[Notification]:
    """Tell every assigned parent that a task was published."""

    notifications = _dispatch_to_each(
        coordinator,
        recipient_ids,
        kind=NotificationKind.TASK,
        message=f'Nueva tarea asignada: "{title}". Fecha de entrega: {_format_date(due_date)}',
        priority=NotificationPriority.HIGH,
        reference=NotificationReference(ReferenceModel.TASK, task_id),
        metadata={
            "course_name": course_name,
            "due_date": due_date,
            "delivery_type": delivery_type,
        },
        group_key=f"task:{task_id}",
    )
    logger.info("Task %s notifications sent to %s users", task_id, len(notifications))
    return notifications


def notify_submission_received(
    coordinator: DeliveryCoordinator,
    *,
    teacher_id: int,
    submission_id: int,
    task_title: str,
    parent_name: str,
    status: str,
) -> list[Notification]:
    return _dispatch_to_each(
        coordinator,
        [teacher_id],
        kind=NotificationKind.SUBMISSION,
        message=f'{parent_name} ha enviado la entrega de "{task_title}"',
        priority=NotificationPriority.CRITICAL,
        reference=NotificationReference(ReferenceModel.SUBMISSION, submission_id),
        metadata={"task_title": task_title, "parent_name": parent_name, "status": status},
    )


def notify_grade_posted(
    coordinator: DeliveryCoordinator,
    *,
    parent_id: int,
    submission_id: int,
    task_title: str,
    grade: float,
    comment: str | None,
    teacher_name: str,
) -> list[Notification]:
    return _dispatch_to_each(
        coordinator,
        [parent_id],
        kind=NotificationKind.GRADE,
        message=f'Tu entrega de "{task_title}" ha sido calificada. Nota: {grade:g}/100',
        priority=NotificationPriority.HIGH,
        reference=NotificationReference(ReferenceModel.SUBMISSION, submission_id),
        metadata={
            "task_title": task_title,
            "grade": grade,
            "comment": comment,
            "teacher_name": teacher_name,
        },
    )


def notify_task_due_soon(
    coordinator: DeliveryCoordinator,
    *,
    recipient_ids: Iterable[int],
    task_id: int,
    title: str,
    due_date: date | datetime | None,
    course_name: str,
) -> list[Notification]:
    """Remind parents who have not submitted yet that the task is due in 24 hours.

    Filtering out parents who already submitted is the caller's job.
    """

    return _dispatch_to_each(
        coordinator,
        recipient_ids,
        kind=NotificationKind.TASK,
        message=f'⚠️ Recordatorio: La tarea "{title}" vence en 24 horas',
        priority=NotificationPriority.CRITICAL,
        reference=NotificationReference(ReferenceModel.TASK, task_id),
        metadata={"course_name": course_name, "due_date": due_date, "is_reminder": True},
        group_key=f"task:{task_id}:reminder",
    )


def notify_task_closed(
    coordinator: DeliveryCoordinator,
    *,
    recipient_ids: Iterable[int],
    task_id: int,
    title: str,
    course_name: str,
) -> list[Notification]:
    return _dispatch_to_each(
        coordinator,
        recipient_ids,
        kind=NotificationKind.TASK,
        message=f'La tarea "{title}" ha sido cerrada. Ya no se aceptan más entregas',
        priority=NotificationPriority.CRITICAL,
        reference=NotificationReference(ReferenceModel.TASK, task_id),
        metadata={"course_name": course_name, "closed_at": local_now()},
        group_key=f"task:{task_id}",
    )


def notify_welcome(coordinator: DeliveryCoordinator, *, user: User) -> list[Notification]:
    return _dispatch_to_each(
        coordinator,
        [user.id],
        kind=NotificationKind.SYSTEM,
        message=f"¡Bienvenido {user.name}! Tu cuenta ha sido creada exitosamente",
        priority=NotificationPriority.CRITICAL,
        reference=NotificationReference(ReferenceModel.USER, user.id),
        metadata={"role": user.role, "registered_at": user.created_at},
    )


def notify_added_to_course(
    coordinator: DeliveryCoordinator,
    *,
    user_id: int,
    course_id: int,
    course_name: str,
    course_code: str | None,
) -> list[Notification]:
    return _dispatch_to_each(
        coordinator,
        [user_id],
        kind=NotificationKind.SYSTEM,
        message=f'Has sido agregado al curso "{course_name}"',
        priority=NotificationPriority.CRITICAL,
        reference=NotificationReference(ReferenceModel.COURSE, course_id),
        metadata={"course_name": course_name, "course_code": course_code},
    )


def notify_forum_message(
    coordinator: DeliveryCoordinator,
    *,
    recipient_ids: Iterable[int],
    forum_id: int,
    forum_title: str,
    author_name: str,
) -> list[Notification]:
    """Announce a new forum message to the forum's participants."""

    return _dispatch_to_each(
        coordinator,
        recipient_ids,
        kind=NotificationKind.FORUM,
        message=f'{author_name} publicó un mensaje en el foro "{forum_title}"',
        priority=NotificationPriority.MEDIUM,
        metadata={"forum_id": forum_id, "forum_title": forum_title, "author_name": author_name},
        group_key=f"forum:{forum_id}",
    )


__all__ = [
    "notify_added_to_course",
    "notify_forum_message",
    "notify_grade_posted",
    "notify_submission_received",
    "notify_task_closed",
    "notify_task_created",
    "notify_task_due_soon",
    "notify_welcome",
]
