"""Utility script to create a notification recipient in the database."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from avisos.application.use_cases.notifications import notify_welcome
from avisos.domain.entities import ROLES, User
from avisos.infrastructure.database import SessionLocal, initialize_database
from avisos.infrastructure.notifications import get_coordinator
from avisos.infrastructure.repositories import UserRepository


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a notification recipient for the Avisos service.",
    )
    parser.add_argument("--name", required=True, help="Nombre completo del usuario")
    parser.add_argument("--email", default=None, help="Correo electrónico del usuario (opcional)")
    parser.add_argument(
        "--phone",
        default=None,
        help="Teléfono en formato internacional para WhatsApp, p. ej. +573001234567 (opcional)",
    )
    parser.add_argument(
        "--role",
        choices=ROLES,
        default="padre",
        help="Rol del usuario (por defecto: padre)",
    )
    parser.add_argument(
        "--no-email-notifications",
        action="store_true",
        help="Desactiva el envío de notificaciones por correo para el usuario.",
    )
    parser.add_argument(
        "--welcome",
        action="store_true",
        help="Envía la notificación de bienvenida después de crear el usuario.",
    )
    return parser.parse_args()


def main() -> None:
    """Create a user using the provided command line arguments."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        user = UserRepository(session).create(
            User(
                id=None,
                name=args.name,
                email=args.email,
                role=args.role,
                phone=args.phone,
                email_notifications=not args.no_email_notifications,
            )
        )
    except ValueError as exc:
        session.rollback()
        raise SystemExit(f"No se pudo crear el usuario: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Error al guardar el usuario en la base de datos: {exc}") from exc
    finally:
        session.close()

    print(
        "Usuario creado exitosamente:\n"
        f"  ID: {user.id}\n"
        f"  Nombre: {user.name}\n"
        f"  Email: {user.email or '-'}\n"
        f"  Teléfono: {user.phone or '-'}\n"
        f"  Rol: {user.role}"
    )

    if args.welcome:
        notify_welcome(get_coordinator(), user=user)


if __name__ == "__main__":
    main()
