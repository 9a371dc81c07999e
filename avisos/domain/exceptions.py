"""Errors raised by the notification core."""

from __future__ import annotations


class ValidationError(ValueError):
    """Malformed notification input rejected before any storage write."""


class NotFoundError(LookupError):
    """The notification does not exist or is not owned by the acting user.

    Both situations raise the same message so that the existence of other
    users' notifications never leaks.
    """

    def __init__(self, message: str = "Notificación no encontrada") -> None:
        super().__init__(message)


class PersistenceError(RuntimeError):
    """The database rejected a notification write."""


class ChannelDeliveryError(RuntimeError):
    """A channel's external transport failed or timed out."""

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"{channel}: {reason}")
        self.channel = channel
        self.reason = reason


class PresenceInconsistency(RuntimeError):
    """A connection closed without a matching connect record."""


__all__ = [
    "ChannelDeliveryError",
    "NotFoundError",
    "PersistenceError",
    "PresenceInconsistency",
    "ValidationError",
]
