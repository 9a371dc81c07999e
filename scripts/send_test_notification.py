"""Dispatch a notification to a user and report which channels accepted it."""

from __future__ import annotations

import argparse
import asyncio
import logging

from avisos.domain.entities import NotificationKind, NotificationPriority
from avisos.domain.exceptions import PersistenceError, ValidationError
from avisos.infrastructure.database import SessionLocal, initialize_database
from avisos.infrastructure.notifications import get_coordinator
from avisos.infrastructure.repositories import NotificationRepository


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send a test notification through every channel its priority reaches.",
    )
    parser.add_argument("user_id", type=int, help="ID del usuario destinatario")
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in NotificationKind],
        default=NotificationKind.SYSTEM.value,
        help="Tipo de notificación (por defecto: system)",
    )
    parser.add_argument(
        "--priority",
        choices=[priority.value for priority in NotificationPriority],
        default=NotificationPriority.CRITICAL.value,
        help="Prioridad de la notificación (por defecto: critical)",
    )
    parser.add_argument(
        "--message",
        default="Esta es una notificación de prueba del Sistema Educativo",
        help="Texto de la notificación",
    )
    return parser.parse_args()


async def run(args: argparse.Namespace) -> None:
    coordinator = get_coordinator()
    try:
        notification = coordinator.dispatch(
            args.user_id, args.kind, args.message, args.priority
        )
    except (ValidationError, PersistenceError) as exc:
        raise SystemExit(f"No se pudo enviar la notificación: {exc}") from exc

    await coordinator.drain()

    with SessionLocal() as session:
        stored = NotificationRepository(session).get(notification.id)

    print(f"Notificación {notification.id} enviada al usuario {args.user_id}:")
    for channel in coordinator.policy.channels_for(args.priority):
        delivered = stored.delivery_flags()[channel.value] if stored else False
        print(f"  {channel.value}: {'entregada' if delivered else 'no entregada'}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = parse_args()
    initialize_database()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
