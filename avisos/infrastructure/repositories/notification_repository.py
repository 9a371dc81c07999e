"""Persistence helpers for notification entities."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from avisos.domain.entities import (
    DeliveryChannel,
    Notification,
    NotificationKind,
    NotificationPage,
    NotificationPriority,
    NotificationReference,
    ReferenceModel,
)
from avisos.domain.entities.notification import (
    parse_channels,
    parse_kind,
    validate_notification,
)
from avisos.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from avisos.infrastructure.models import NotificationModel
from avisos.utils import (
    stored_cutoff,
    stored_now,
    to_local,
    to_stored,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_CHANNEL_COLUMNS = {
    DeliveryChannel.REALTIME: NotificationModel.delivered_realtime,
    DeliveryChannel.PUSH: NotificationModel.delivered_push,
    DeliveryChannel.WHATSAPP: NotificationModel.delivered_whatsapp,
    DeliveryChannel.EMAIL: NotificationModel.delivered_email,
}


class NotificationRepository:
    """Owner-scoped storage for :class:`Notification` records.

    Every mutation filters by recipient as well as by id, so a caller can
    never read or modify a notification that belongs to another user.
    """

    def __init__(self, session: Session, *, max_page_size: int = MAX_PAGE_SIZE) -> None:
        self.session = session
        self.max_page_size = max_page_size

    def create(self, notification: Notification) -> Notification:
        """Validate and persist ``notification``, returning the stored record."""

        notification = validate_notification(notification)
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception(
                "Failed to store notification for user %s", notification.recipient_id
            )
            raise PersistenceError("No se pudo guardar la notificación") from exc
        self.session.refresh(model)
        return self._to_entity(model)

    def get_for_user(self, notification_id: int, recipient_id: int) -> Notification:
        model = self._owned(notification_id, recipient_id).first()
        if model is None:
            raise NotFoundError()
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        recipient_id: int,
        *,
        kind: NotificationKind | str | None = None,
        read: bool | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> NotificationPage:
        """Return a newest-first page of notifications plus the unread count."""

        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValidationError("La página debe ser un número entero mayor a 0")
        if (
            isinstance(page_size, bool)
            or not isinstance(page_size, int)
            or not 1 <= page_size <= self.max_page_size
        ):
            raise ValidationError(
                f"El límite debe estar entre 1 y {self.max_page_size}"
            )

        query = self.session.query(NotificationModel).filter(
            NotificationModel.recipient_id == recipient_id
        )
        if kind is not None:
            query = query.filter(NotificationModel.kind == parse_kind(kind).value)
        if read is not None:
            query = query.filter(NotificationModel.read.is_(bool(read)))

        total = query.count()
        models = (
            query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return NotificationPage(
            items=[self._to_entity(model) for model in models],
            total=total,
            unread=self.count_unread(recipient_id),
            page=page,
            page_size=page_size,
        )

    def list_unread_for_user(
        self, recipient_id: int, *, limit: int | None = 50
    ) -> Sequence[Notification]:
        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.recipient_id == recipient_id)
            .filter(NotificationModel.read.is_(False))
            .order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_unread(self, recipient_id: int) -> int:
        return (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
            .count()
        )

    def mark_read(self, notification_id: int, recipient_id: int) -> Notification:
        """Flag the notification as read; repeated calls are no-ops."""

        model = self._owned(notification_id, recipient_id).first()
        if model is None:
            raise NotFoundError()
        if not model.read:
            model.read = True
            self.session.commit()
            self.session.refresh(model)
        return self._to_entity(model)

    def mark_many_read(self, notification_ids: Iterable[int], recipient_id: int) -> int:
        ids = [notification_id for notification_id in notification_ids if notification_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
            .update({NotificationModel.read: True}, synchronize_session=False)
        )
        self.session.commit()
        return updated

    def mark_all_read(self, recipient_id: int) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
            .update({NotificationModel.read: True}, synchronize_session=False)
        )
        self.session.commit()
        return updated

    def delete(self, notification_id: int, recipient_id: int) -> None:
        deleted = self._owned(notification_id, recipient_id).delete(
            synchronize_session=False
        )
        if not deleted:
            self.session.rollback()
            raise NotFoundError()
        self.session.commit()

    def purge_old(self, recipient_id: int, older_than_days: int) -> int:
        """Delete ``recipient_id``'s read notifications older than the cutoff."""

        if isinstance(older_than_days, bool) or not isinstance(older_than_days, int) or older_than_days < 0:
            raise ValidationError("Los días deben ser un número entero no negativo")
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(True),
                NotificationModel.created_at < stored_cutoff(older_than_days),
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def purge_expired(self, retention_days: int) -> int:
        """Delete every notification created more than ``retention_days`` ago."""

        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.created_at < stored_cutoff(retention_days))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def mark_channels_delivered(
        self, notification_id: int, channels: Iterable[DeliveryChannel | str]
    ) -> None:
        """Flip the flags for ``channels`` to ``True`` in a single update."""

        values = {_CHANNEL_COLUMNS[channel]: True for channel in parse_channels(channels)}
        if not values:
            return
        self.session.query(NotificationModel).filter(
            NotificationModel.id == notification_id
        ).update(values, synchronize_session=False)
        self.session.commit()

    def _owned(self, notification_id: int, recipient_id: int):
        return self.session.query(NotificationModel).filter(
            NotificationModel.id == notification_id,
            NotificationModel.recipient_id == recipient_id,
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.recipient_id = notification.recipient_id
        model.kind = notification.kind.value
        model.message = notification.message
        model.priority = notification.priority.value
        model.read = notification.read
        model.created_at = (
            to_stored(notification.created_at)
            or stored_now()
        )
        reference = notification.reference
        model.reference_model = reference.model.value if reference else None
        model.reference_id = reference.id if reference else None
        model.payload = notification.metadata or {}
        model.group_key = notification.group_key
        model.delivered_realtime = notification.delivered_realtime
        model.delivered_push = notification.delivered_push
        model.delivered_whatsapp = notification.delivered_whatsapp
        model.delivered_email = notification.delivered_email

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        reference = None
        if model.reference_model and model.reference_id is not None:
            reference = NotificationReference(
                model=ReferenceModel(model.reference_model), id=model.reference_id
            )
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            kind=NotificationKind(model.kind),
            message=model.message,
            priority=NotificationPriority(model.priority),
            read=bool(model.read),
            created_at=to_local(model.created_at),
            reference=reference,
            metadata=dict(model.payload or {}),
            group_key=model.group_key,
            delivered_realtime=bool(model.delivered_realtime),
            delivered_push=bool(model.delivered_push),
            delivered_whatsapp=bool(model.delivered_whatsapp),
            delivered_email=bool(model.delivered_email),
        )


__all__ = ["DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "NotificationRepository"]
