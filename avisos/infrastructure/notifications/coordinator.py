"""Store-then-fan-out orchestration for new notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from anyio import from_thread
from sqlalchemy.orm import Session

from avisos.config import Settings, get_settings
from avisos.domain.entities import (
    DeliveryChannel,
    Notification,
    NotificationKind,
    NotificationPriority,
    NotificationReference,
    ReferenceModel,
    User,
)
from avisos.domain.exceptions import ChannelDeliveryError, ValidationError
from avisos.infrastructure.database import SessionLocal
from avisos.infrastructure.repositories import NotificationRepository, UserRepository

from .channels import (
    ChannelSender,
    DeliveryOutcome,
    EmailChannel,
    PushChannel,
    RealtimeChannel,
    SessionFactory,
    WhatsAppChannel,
)
from .manager import NotificationConnectionManager, notification_manager
from .policy import ChannelPolicy

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_TIMEOUT = 8.0

ReferenceInput = NotificationReference | tuple[ReferenceModel | str, int]


class DeliveryCoordinator:
    """Persist notifications and deliver them over the applicable channels.

    :meth:`dispatch` is the single entry point for event producers. It stores
    the record synchronously and hands the fan-out to a background task, so a
    slow or failing transport never delays or breaks the caller.
    """

    def __init__(
        self,
        senders: Iterable[ChannelSender],
        *,
        policy: ChannelPolicy | None = None,
        session_factory: SessionFactory = SessionLocal,
        channel_timeout: float = DEFAULT_CHANNEL_TIMEOUT,
    ) -> None:
        self._senders: dict[DeliveryChannel, ChannelSender] = {
            sender.channel: sender for sender in senders
        }
        self.policy = policy or ChannelPolicy()
        self._session_factory = session_factory
        self.channel_timeout = channel_timeout
        self._tasks: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Route fan-outs requested from foreign threads onto ``loop``.

        The server binds its own loop at startup so producers running in
        scheduler or plain threads hand delivery over instead of blocking.
        """

        self._loop = loop

    @property
    def senders(self) -> Mapping[DeliveryChannel, ChannelSender]:
        return self._senders

    def dispatch(
        self,
        recipient_id: int,
        kind: NotificationKind | str,
        message: str,
        priority: NotificationPriority | str = NotificationPriority.MEDIUM,
        reference: ReferenceInput | None = None,
        metadata: dict[str, Any] | None = None,
        group_key: str | None = None,
        *,
        session: Session | None = None,
    ) -> Notification:
        """Store a notification for ``recipient_id`` and schedule its delivery.

        Raises ``ValidationError`` for malformed input or an unknown recipient
        and ``PersistenceError`` when the write fails. The returned record has
        every delivery flag still ``False``.
        """

        notification = Notification(
            id=None,
            recipient_id=recipient_id,
            kind=kind,
            message=message,
            priority=priority,
            reference=_coerce_reference(reference),
            metadata=metadata or {},
            group_key=group_key,
        )
        if session is not None:
            saved = self._store(session, notification)
        else:
            with self._session_factory() as own_session:
                saved = self._store(own_session, notification)

        logger.info(
            "Notification %s (%s/%s) stored for user %s",
            saved.id,
            saved.kind.value,
            saved.priority.value,
            saved.recipient_id,
        )
        self._schedule_fan_out(saved)
        return saved

    async def fan_out(self, notification: Notification) -> dict[DeliveryChannel, DeliveryOutcome]:
        """Run every applicable sender concurrently and record the outcomes."""

        with self._session_factory() as session:
            user = UserRepository(session).get(notification.recipient_id)
        if user is None:
            logger.warning(
                "Recipient %s of notification %s no longer exists; skipping delivery",
                notification.recipient_id,
                notification.id,
            )
            return {}

        senders = [
            self._senders[channel]
            for channel in self.policy.channels_for(notification.priority)
            if channel in self._senders
        ]
        results = await asyncio.gather(
            *(self._send_with_timeout(sender, user, notification) for sender in senders)
        )
        outcomes = {outcome.channel: outcome for outcome in results}

        delivered = [channel for channel, outcome in outcomes.items() if outcome.delivered]
        if delivered:
            with self._session_factory() as session:
                NotificationRepository(session).mark_channels_delivered(
                    notification.id, delivered
                )

        logger.info(
            "Notification %s fan-out finished: %s",
            notification.id,
            ", ".join(f"{channel.value}={outcome.status.value}" for channel, outcome in outcomes.items())
            or "no channels",
        )
        return outcomes

    async def drain(self) -> None:
        """Wait until every scheduled fan-out task has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _store(self, session: Session, notification: Notification) -> Notification:
        if UserRepository(session).get(notification.recipient_id) is None:
            raise ValidationError("Usuario no encontrado")
        return NotificationRepository(session).create(notification)

    async def _send_with_timeout(
        self, sender: ChannelSender, user: User, notification: Notification
    ) -> DeliveryOutcome:
        try:
            return await asyncio.wait_for(
                sender.send(user, notification), timeout=self.channel_timeout
            )
        except asyncio.TimeoutError:
            error = ChannelDeliveryError(
                sender.channel.value, f"sin respuesta tras {self.channel_timeout:g}s"
            )
        except Exception as exc:  # isolate one transport's failure from the others
            logger.exception(
                "Channel %s raised while delivering notification %s",
                sender.channel.value,
                notification.id,
            )
            error = ChannelDeliveryError(sender.channel.value, str(exc) or exc.__class__.__name__)

        logger.warning(
            "Delivery of notification %s failed on %s: %s",
            notification.id,
            error.channel,
            error.reason,
        )
        return DeliveryOutcome.failed_by(sender.channel, error.reason)

    async def _run_fan_out(self, notification: Notification) -> None:
        try:
            await self.fan_out(notification)
        except Exception:  # the producer already got its record back
            logger.exception("Fan-out of notification %s aborted", notification.id)

    def _spawn_fan_out(self, notification: Notification) -> None:
        task = asyncio.get_running_loop().create_task(self._run_fan_out(notification))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _schedule_fan_out(self, notification: Notification) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run_sync(self._spawn_fan_out, notification)
            except RuntimeError:
                loop = self._loop
                if loop is not None and loop.is_running():
                    loop.call_soon_threadsafe(self._spawn_fan_out, notification)
                else:
                    # No server loop (CLI scripts): deliver inline.
                    asyncio.run(self._run_fan_out(notification))
        else:
            self._spawn_fan_out(notification)


def _coerce_reference(reference: ReferenceInput | None) -> NotificationReference | None:
    if reference is None or isinstance(reference, NotificationReference):
        return reference
    try:
        model, reference_id = reference
        return NotificationReference(model=ReferenceModel(model), id=int(reference_id))
    except (TypeError, ValueError) as exc:
        raise ValidationError("La referencia de la notificación no es válida") from exc


def build_coordinator(
    manager: NotificationConnectionManager,
    settings: Settings,
    *,
    session_factory: SessionFactory = SessionLocal,
) -> DeliveryCoordinator:
    """Wire the four standard channels according to ``settings``."""

    senders: list[ChannelSender] = [
        RealtimeChannel(manager, session_factory),
        PushChannel(session_factory, settings),
        WhatsAppChannel(settings),
        EmailChannel(settings.email_notification_roles),
    ]
    return DeliveryCoordinator(
        senders,
        policy=ChannelPolicy(settings.notification_channel_policy),
        session_factory=session_factory,
        channel_timeout=settings.notification_channel_timeout_seconds,
    )


@lru_cache
def get_coordinator() -> DeliveryCoordinator:
    """Return the process-wide coordinator bound to the shared connection manager."""

    return build_coordinator(notification_manager, get_settings())


__all__ = [
    "DEFAULT_CHANNEL_TIMEOUT",
    "DeliveryCoordinator",
    "build_coordinator",
    "get_coordinator",
]
