"""Domain entities exposed by the application."""

from .notification import (
    DeliveryChannel,
    Notification,
    NotificationKind,
    NotificationPage,
    NotificationPriority,
    NotificationReference,
    ReferenceModel,
)
from .push_subscription import PushSubscription
from .user import ROLE_ADMIN, ROLE_PARENT, ROLE_TEACHER, ROLES, User

__all__ = [
    "DeliveryChannel",
    "Notification",
    "NotificationKind",
    "NotificationPage",
    "NotificationPriority",
    "NotificationReference",
    "PushSubscription",
    "ReferenceModel",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_PARENT",
    "ROLE_TEACHER",
    "User",
]
