"""Shared contract for notification delivery channels."""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from avisos.domain.entities import DeliveryChannel, Notification, User

SessionFactory = Callable[[], Session]


class OutcomeStatus(str, enum.Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one channel's attempt to deliver one notification."""

    channel: DeliveryChannel
    status: OutcomeStatus
    reason: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status is OutcomeStatus.DELIVERED

    @classmethod
    def delivered_by(cls, channel: DeliveryChannel) -> "DeliveryOutcome":
        return cls(channel, OutcomeStatus.DELIVERED)

    @classmethod
    def skipped_by(cls, channel: DeliveryChannel, reason: str) -> "DeliveryOutcome":
        return cls(channel, OutcomeStatus.SKIPPED, reason)

    @classmethod
    def failed_by(cls, channel: DeliveryChannel, reason: str) -> "DeliveryOutcome":
        return cls(channel, OutcomeStatus.FAILED, reason)


class ChannelSender(ABC):
    """One external transport able to deliver a stored notification.

    Implementations report expected conditions (user offline, no phone on
    file, transport rejected the message) as outcomes. Anything they raise is
    turned into a ``failed`` outcome by the coordinator.
    """

    channel: DeliveryChannel

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def send(self, user: User, notification: Notification) -> DeliveryOutcome:
        """Attempt delivery of ``notification`` to ``user``."""

    def delivered(self) -> DeliveryOutcome:
        return DeliveryOutcome.delivered_by(self.channel)

    def skipped(self, reason: str) -> DeliveryOutcome:
        self.logger.debug("%s skipped: %s", self.channel.value, reason)
        return DeliveryOutcome.skipped_by(self.channel, reason)

    def failed(self, reason: str) -> DeliveryOutcome:
        return DeliveryOutcome.failed_by(self.channel, reason)


__all__ = [
    "ChannelSender",
    "DeliveryOutcome",
    "OutcomeStatus",
    "SessionFactory",
]
