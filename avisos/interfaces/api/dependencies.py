"""FastAPI dependency utilities."""

from fastapi import HTTPException, WebSocket, status
from sqlalchemy.orm import Session

from avisos.domain.entities import User
from avisos.infrastructure.repositories import UserRepository
from avisos.infrastructure.security import user_id_from_token


def resolve_current_user(token: str, db: Session) -> User:
    """Resolve the active user for the provided bearer token."""

    try:
        user_id = user_id_from_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciales inválidas",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    user = UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario no encontrado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Usuario inactivo",
        )
    return user


def websocket_token(websocket: WebSocket) -> str | None:
    """Return the bearer token from the ``token`` query parameter or the header."""

    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


__all__ = ["resolve_current_user", "websocket_token"]
