"""Shared fixtures: a throwaway SQLite database and recipient factories."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
for _name in (
    "SENDGRID_API_KEY",
    "SENDGRID_SENDER",
    "VAPID_PRIVATE_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_WHATSAPP_NUMBER",
    "NOTIFICATION_CHANNEL_POLICY",
    "EMAIL_NOTIFICATION_ROLES",
):
    os.environ.pop(_name, None)

from avisos.domain.entities import User  # noqa: E402
from avisos.infrastructure import database  # noqa: E402
from avisos.infrastructure.repositories import UserRepository  # noqa: E402


@pytest.fixture(autouse=True)
def setup_database():
    """Recreate every table so each test starts from an empty database."""

    from avisos.infrastructure import models  # noqa: F401

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)
    yield
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def make_user(session):
    """Return a factory that stores a recipient and returns it."""

    counter = {"value": 0}

    def _make_user(
        *,
        name: str = "Usuario",
        role: str = "padre",
        email: str | None = "",
        phone: str | None = None,
        is_active: bool = True,
        email_notifications: bool = True,
    ) -> User:
        counter["value"] += 1
        if email == "":
            email = f"user{counter['value']}@example.com"
        return UserRepository(session).create(
            User(
                id=None,
                name=f"{name} {counter['value']}",
                email=email,
                role=role,
                phone=phone,
                is_active=is_active,
                email_notifications=email_notifications,
            )
        )

    return _make_user


class FakeWebSocket:
    """Minimal stand-in for ``fastapi.WebSocket`` recording sent messages."""

    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.broken = broken
        self.sent: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(message)


@pytest.fixture()
def fake_websocket_factory():
    return FakeWebSocket
