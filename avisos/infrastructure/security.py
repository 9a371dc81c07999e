"""Bearer token helpers for the realtime channel.

Tokens are issued by the wider backend; this service only needs to verify
them, plus create them for operator scripts and tests.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from avisos.config import get_settings

ALGORITHM = "HS256"
DEFAULT_EXPIRATION = timedelta(minutes=60)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_EXPIRATION)
    return jwt.encode(
        {"sub": str(user_id), "exp": expire}, settings.secret_key, algorithm=ALGORITHM
    )


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def user_id_from_token(token: str) -> int:
    """Return the user id carried in ``token``'s ``sub`` claim."""

    payload = decode_access_token(token)
    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise ValueError("Could not validate credentials") from exc
