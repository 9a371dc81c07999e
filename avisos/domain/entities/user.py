"""Domain entity representing a notification recipient."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLE_ADMIN = "admin"
ROLE_TEACHER = "docente"
ROLE_PARENT = "padre"
ROLES = (ROLE_ADMIN, ROLE_TEACHER, ROLE_PARENT)


@dataclass
class User:
    """Contact details the delivery channels need for a user."""

    id: int | None
    name: str
    email: str | None
    role: str
    phone: str | None = None
    is_active: bool = True
    email_notifications: bool = True
    created_at: datetime | None = None


__all__ = ["ROLES", "ROLE_ADMIN", "ROLE_PARENT", "ROLE_TEACHER", "User"]
