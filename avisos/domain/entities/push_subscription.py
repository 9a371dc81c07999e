"""Domain entity representing a Web Push device registration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class PushSubscription:
    """Browser or device endpoint able to receive push messages for a user."""

    id: int | None
    user_id: int
    endpoint: str
    p256dh: str
    auth: str
    user_agent: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    last_used_at: datetime | None = None

    def subscription_info(self) -> dict[str, Any]:
        """Return the structure expected by Web Push libraries."""

        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


__all__ = ["PushSubscription"]
