from .notification import (
    NotificationIdRequest,
    NotificationListRequest,
    NotificationMarkReadRequest,
    NotificationPurgeRequest,
    PushSubscribeRequest,
    PushSubscriptionKeys,
    PushUnsubscribeRequest,
    WebSocketMessage,
)

__all__ = [
    "NotificationIdRequest",
    "NotificationListRequest",
    "NotificationMarkReadRequest",
    "NotificationPurgeRequest",
    "PushSubscribeRequest",
    "PushSubscriptionKeys",
    "PushUnsubscribeRequest",
    "WebSocketMessage",
]
