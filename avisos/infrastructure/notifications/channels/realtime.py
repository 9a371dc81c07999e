"""Realtime channel: push the notification to every open websocket of the user."""

from __future__ import annotations

from avisos.domain.entities import DeliveryChannel, Notification, User
from avisos.infrastructure.repositories import NotificationRepository

from ..manager import NotificationConnectionManager
from ..message_builder import serialize_notification
from .base import ChannelSender, DeliveryOutcome, SessionFactory

EVENT_NEW = "notification.new"


class RealtimeChannel(ChannelSender):
    channel = DeliveryChannel.REALTIME

    def __init__(
        self, manager: NotificationConnectionManager, session_factory: SessionFactory
    ) -> None:
        super().__init__()
        self._manager = manager
        self._session_factory = session_factory

    async def send(self, user: User, notification: Notification) -> DeliveryOutcome:
        if not self._manager.presence.is_online(notification.recipient_id):
            return self.skipped("usuario sin conexiones activas")

        with self._session_factory() as session:
            unread = NotificationRepository(session).count_unread(notification.recipient_id)

        message = {
            "type": EVENT_NEW,
            "data": {
                "notification": serialize_notification(notification),
                "unread_count": unread,
            },
        }
        sent = await self._manager.send_to_user(notification.recipient_id, message)
        if not sent:
            return self.failed("ninguna conexión aceptó el mensaje")
        return self.delivered()


__all__ = ["EVENT_NEW", "RealtimeChannel"]
