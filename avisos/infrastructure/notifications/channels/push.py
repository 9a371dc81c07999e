"""Web Push channel signed with VAPID keys."""

from __future__ import annotations

import asyncio
from functools import partial

from anyio import to_thread
from pywebpush import WebPushException, webpush

from avisos.config import Settings, get_settings
from avisos.domain.entities import DeliveryChannel, Notification, PushSubscription, User
from avisos.infrastructure.repositories import PushSubscriptionRepository

from ..message_builder import build_push_payload
from .base import ChannelSender, DeliveryOutcome, SessionFactory

# Push services answer these when the subscription no longer exists.
EXPIRED_STATUS_CODES = frozenset({404, 410})

_SENT = "sent"
_EXPIRED = "expired"
_ERROR = "error"


class PushChannel(ChannelSender):
    """Deliver to every active subscription of the user.

    An expired subscription is deactivated on its own and does not count as
    an error; the outcome is ``failed`` only when every attempt errored.
    """

    channel = DeliveryChannel.PUSH

    def __init__(self, session_factory: SessionFactory, settings: Settings | None = None) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    async def send(self, user: User, notification: Notification) -> DeliveryOutcome:
        if not self.settings.vapid_private_key:
            return self.skipped("push no configurado")

        with self._session_factory() as session:
            subscriptions = PushSubscriptionRepository(session).list_active_for_user(user.id)
        if not subscriptions:
            return self.skipped("usuario sin suscripciones push")

        payload = build_push_payload(notification)
        results = await asyncio.gather(
            *(self._send_one(subscription, payload) for subscription in subscriptions)
        )

        if _SENT in results:
            return self.delivered()
        if _ERROR in results:
            return self.failed(f"{results.count(_ERROR)} suscripciones con error")
        return self.skipped("todas las suscripciones expiraron")

    async def _send_one(self, subscription: PushSubscription, payload: str) -> str:
        settings = self.settings
        claims = {"sub": f"mailto:{settings.vapid_claims_email}"} if settings.vapid_claims_email else {}
        call = partial(
            webpush,
            subscription_info=subscription.subscription_info(),
            data=payload,
            vapid_private_key=settings.vapid_private_key,
            vapid_claims=claims,
            timeout=settings.notification_channel_timeout_seconds,
        )
        try:
            await to_thread.run_sync(call)
        except WebPushException as exc:
            status_code = getattr(exc.response, "status_code", None)
            if status_code in EXPIRED_STATUS_CODES:
                self.logger.info(
                    "Deactivating expired push subscription %s (status %s)",
                    subscription.id,
                    status_code,
                )
                with self._session_factory() as session:
                    PushSubscriptionRepository(session).deactivate(subscription.id)
                return _EXPIRED
            self.logger.error(
                "Push delivery to subscription %s failed: %s", subscription.id, exc
            )
            return _ERROR
        except Exception as exc:  # connection errors and timeouts from the HTTP layer
            self.logger.error(
                "Push delivery to subscription %s failed: %s: %s",
                subscription.id,
                exc.__class__.__name__,
                exc,
            )
            return _ERROR

        with self._session_factory() as session:
            PushSubscriptionRepository(session).touch(subscription.id)
        return _SENT


__all__ = ["EXPIRED_STATUS_CODES", "PushChannel"]
