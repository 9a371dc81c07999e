"""Connection management helpers for notification websockets."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from .presence import PresenceRegistry

logger = logging.getLogger(__name__)


class NotificationConnectionManager:
    """Own the open websockets and keep the presence registry in sync."""

    def __init__(self, presence: PresenceRegistry | None = None) -> None:
        self.presence = presence if presence is not None else PresenceRegistry()
        self._sockets: dict[str, WebSocket] = {}

    async def connect(self, user_id: int, websocket: WebSocket) -> str:
        """Accept ``websocket`` for ``user_id`` and return its connection id."""

        await websocket.accept()
        connection_id = uuid4().hex
        self._sockets[connection_id] = websocket
        self.presence.on_connect(user_id, connection_id)
        logger.info("User %s connected (%s)", user_id, connection_id)
        return connection_id

    def disconnect(self, user_id: int, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)
        self.presence.on_disconnect(user_id, connection_id)
        logger.info("User %s disconnected (%s)", user_id, connection_id)

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return False
        await websocket.send_json(message)
        return True

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> int:
        """Send ``message`` to every connection of ``user_id``.

        Returns how many connections accepted the message. Connections that
        fail are dropped from the registry.
        """

        delivered = 0
        for connection_id in self.presence.connections_for(user_id):
            websocket = self._sockets.get(connection_id)
            if websocket is None:
                self.presence.on_disconnect(user_id, connection_id)
                continue
            try:
                await websocket.send_json(message)
            except Exception:  # closed sockets raise transport-specific errors
                logger.warning(
                    "Dropping broken connection %s of user %s", connection_id, user_id
                )
                self.disconnect(user_id, connection_id)
            else:
                delivered += 1
        return delivered


notification_manager = NotificationConnectionManager()


__all__ = ["NotificationConnectionManager", "notification_manager"]
