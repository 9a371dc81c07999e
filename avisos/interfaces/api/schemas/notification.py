"""Pydantic models describing websocket notification requests."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from avisos.domain.entities import NotificationKind


class WebSocketMessage(BaseModel):
    """Envelope shared by every message exchanged over the websocket."""

    type: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationListRequest(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1)
    kind: NotificationKind | None = None
    read: bool | None = None


class NotificationIdRequest(BaseModel):
    id: int = Field(..., gt=0, description="Identificador de la notificación")


class NotificationMarkReadRequest(BaseModel):
    """Payload used to mark a batch of notifications as read."""

    ids: list[int] = Field(..., min_length=1, description="Identificadores de notificaciones")

    def unique_ids(self) -> list[int]:
        """Return the list of identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class NotificationPurgeRequest(BaseModel):
    days: int = Field(30, ge=0, description="Antigüedad mínima en días")


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushSubscriptionKeys
    user_agent: str | None = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


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
