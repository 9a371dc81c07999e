"""Inbox operations performed by a connected user on their own notifications."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from avisos.config import get_settings
from avisos.domain.entities import Notification, NotificationKind, NotificationPage
from avisos.infrastructure.notifications import NotificationConnectionManager
from avisos.infrastructure.repositories import NotificationRepository
from avisos.infrastructure.repositories.notification_repository import DEFAULT_PAGE_SIZE

EVENT_COUNT = "notification.count"
EVENT_READ = "notification.read"
EVENT_DELETED = "notification.deleted"

DEFAULT_PURGE_DAYS = 30


def _repository(session: Session) -> NotificationRepository:
    return NotificationRepository(
        session, max_page_size=get_settings().notification_page_size_max
    )


async def broadcast_unread_count(
    session: Session, manager: NotificationConnectionManager, user_id: int
) -> int:
    """Push the recomputed unread count to every connection of ``user_id``."""

    unread = NotificationRepository(session).count_unread(user_id)
    await manager.send_to_user(
        user_id, {"type": EVENT_COUNT, "data": {"unread_count": unread}}
    )
    return unread


def list_page(
    session: Session,
    user_id: int,
    *,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    kind: NotificationKind | str | None = None,
    read: bool | None = None,
) -> NotificationPage:
    return _repository(session).list_for_user(
        user_id, kind=kind, read=read, page=page, page_size=page_size
    )


async def mark_read(
    session: Session,
    manager: NotificationConnectionManager,
    user_id: int,
    notification_id: int,
) -> Notification:
    notification = _repository(session).mark_read(notification_id, user_id)
    await manager.send_to_user(
        user_id, {"type": EVENT_READ, "data": {"ids": [notification.id]}}
    )
    await broadcast_unread_count(session, manager, user_id)
    return notification


async def mark_many_read(
    session: Session,
    manager: NotificationConnectionManager,
    user_id: int,
    notification_ids: Iterable[int],
) -> int:
    ids = list(dict.fromkeys(notification_ids))
    updated = _repository(session).mark_many_read(ids, user_id)
    if updated:
        await manager.send_to_user(user_id, {"type": EVENT_READ, "data": {"ids": ids}})
    await broadcast_unread_count(session, manager, user_id)
    return updated


async def mark_all_read(
    session: Session, manager: NotificationConnectionManager, user_id: int
) -> int:
    repository = _repository(session)
    ids = [notification.id for notification in repository.list_unread_for_user(user_id, limit=None)]
    updated = repository.mark_all_read(user_id)
    if updated:
        await manager.send_to_user(user_id, {"type": EVENT_READ, "data": {"ids": ids}})
    await broadcast_unread_count(session, manager, user_id)
    return updated


async def delete_notification(
    session: Session,
    manager: NotificationConnectionManager,
    user_id: int,
    notification_id: int,
) -> None:
    _repository(session).delete(notification_id, user_id)
    await manager.send_to_user(
        user_id, {"type": EVENT_DELETED, "data": {"id": notification_id}}
    )
    await broadcast_unread_count(session, manager, user_id)


async def purge_old(
    session: Session,
    manager: NotificationConnectionManager,
    user_id: int,
    older_than_days: int = DEFAULT_PURGE_DAYS,
) -> int:
    """Delete the user's read notifications older than ``older_than_days``."""

    deleted = _repository(session).purge_old(user_id, older_than_days)
    if deleted:
        await broadcast_unread_count(session, manager, user_id)
    return deleted


__all__ = [
    "DEFAULT_PURGE_DAYS",
    "EVENT_COUNT",
    "EVENT_DELETED",
    "EVENT_READ",
    "broadcast_unread_count",
    "delete_notification",
    "list_page",
    "mark_all_read",
    "mark_many_read",
    "mark_read",
    "purge_old",
]
