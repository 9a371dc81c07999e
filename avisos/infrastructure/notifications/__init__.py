"""Notification delivery infrastructure: presence, channels and fan-out."""

from .coordinator import DeliveryCoordinator, build_coordinator, get_coordinator
from .manager import NotificationConnectionManager, notification_manager
from .policy import ChannelPolicy
from .presence import PresenceRegistry

__all__ = [
    "ChannelPolicy",
    "DeliveryCoordinator",
    "NotificationConnectionManager",
    "PresenceRegistry",
    "build_coordinator",
    "get_coordinator",
    "notification_manager",
]
