"""WhatsApp channel backed by the Twilio Messaging API."""

from __future__ import annotations

from anyio import to_thread
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from avisos.config import Settings, get_settings
from avisos.domain.entities import DeliveryChannel, Notification, User

from ..message_builder import build_whatsapp_body
from .base import ChannelSender, DeliveryOutcome


class WhatsAppChannel(ChannelSender):
    channel = DeliveryChannel.WHATSAPP

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self._settings = settings
        self._client: Client | None = None

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(
                self.settings.twilio_account_sid, self.settings.twilio_auth_token
            )
        return self._client

    async def send(self, user: User, notification: Notification) -> DeliveryOutcome:
        if not user.phone:
            return self.skipped("usuario sin teléfono")
        settings = self.settings
        if not settings.twilio_account_sid:
            return self.skipped("WhatsApp no configurado")

        client = self._get_client()
        body = build_whatsapp_body(notification)

        def create_message():
            return client.messages.create(
                from_=f"whatsapp:{settings.twilio_whatsapp_number}",
                to=f"whatsapp:{user.phone}",
                body=body,
            )

        try:
            message = await to_thread.run_sync(create_message)
        except TwilioException as exc:
            self.logger.error(
                "WhatsApp delivery of notification %s failed: %s", notification.id, exc
            )
            return self.failed(str(exc))

        self.logger.info(
            "WhatsApp message %s queued for user %s", getattr(message, "sid", None), user.id
        )
        return self.delivered()


__all__ = ["WhatsAppChannel"]
