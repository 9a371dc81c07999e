"""Email channel rendering an HTML message and sending it through SendGrid."""

from __future__ import annotations

from collections.abc import Iterable

from anyio import to_thread

from avisos.domain.entities import DeliveryChannel, Notification, User
from avisos.infrastructure import email as email_transport

from ..message_builder import build_email_html, notification_title
from .base import ChannelSender, DeliveryOutcome


class EmailChannel(ChannelSender):
    """Send the notification by email to users who accept it.

    ``allowed_roles`` restricts the channel to some roles; an empty collection
    lets every role through.
    """

    channel = DeliveryChannel.EMAIL

    def __init__(self, allowed_roles: Iterable[str] = ()) -> None:
        super().__init__()
        self._allowed_roles = {role.lower() for role in allowed_roles}

    async def send(self, user: User, notification: Notification) -> DeliveryOutcome:
        if not user.email:
            return self.skipped("usuario sin correo electrónico")
        if not user.email_notifications:
            return self.skipped("el usuario desactivó las notificaciones por correo")
        if self._allowed_roles and user.role.lower() not in self._allowed_roles:
            return self.skipped(f"rol '{user.role}' sin notificaciones por correo")
        if not email_transport.is_email_configured():
            return self.skipped("SendGrid no configurado")

        subject = notification_title(notification)
        html_content = build_email_html(user, notification)
        try:
            await to_thread.run_sync(
                email_transport.send_email, subject, html_content, user.email
            )
        except email_transport.EmailDeliveryError as exc:
            return self.failed(str(exc))
        return self.delivered()


__all__ = ["EmailChannel"]
