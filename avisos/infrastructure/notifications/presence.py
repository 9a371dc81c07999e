"""Process-local registry of live realtime connections."""

from __future__ import annotations

import logging

from avisos.domain.exceptions import PresenceInconsistency

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Map each user id to the ids of its open realtime connections.

    A user may hold several connections at once (tabs, devices); the entry is
    removed as soon as the last one closes, so an existing key always means the
    user is online. Mutations happen on the event-loop thread that owns the
    sockets, so no locking is needed.
    """

    def __init__(self) -> None:
        self._connections: dict[int, set[str]] = {}

    def on_connect(self, user_id: int, connection_id: str) -> None:
        self._connections.setdefault(user_id, set()).add(connection_id)

    def on_disconnect(self, user_id: int, connection_id: str) -> None:
        try:
            self._remove(user_id, connection_id)
        except PresenceInconsistency as exc:
            logger.warning("Ignoring disconnect without connect: %s", exc)

    def is_online(self, user_id: int) -> bool:
        return user_id in self._connections

    def connections_for(self, user_id: int) -> frozenset[str]:
        return frozenset(self._connections.get(user_id, ()))

    def online_users(self) -> list[int]:
        return list(self._connections)

    def _remove(self, user_id: int, connection_id: str) -> None:
        connections = self._connections.get(user_id)
        if connections is None or connection_id not in connections:
            raise PresenceInconsistency(
                f"connection {connection_id} is not registered for user {user_id}"
            )
        connections.discard(connection_id)
        if not connections:
            del self._connections[user_id]


__all__ = ["PresenceRegistry"]
