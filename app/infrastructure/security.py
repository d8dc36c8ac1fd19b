"""Security helpers for access token generation and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import get_settings

ALGORITHM = "HS256"


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode({**data, "exp": expire}, settings.secret_key, algorithm=ALGORITHM)


def create_user_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Issue a token whose subject is ``user_id``."""

    return create_access_token({"sub": str(user_id)}, expires_delta)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def token_user_id(payload: dict[str, Any]) -> int:
    """Return the user id carried by a decoded token payload."""

    subject = payload.get("sub", payload.get("user_id"))
    if subject is None or isinstance(subject, bool):
        raise ValueError("Token without subject")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise ValueError("Token subject is not a user id") from exc


def verify_user_token(token: str, user_id: int) -> bool:
    """Return ``True`` when ``token`` is valid and was issued for ``user_id``."""

    if not token:
        return False
    try:
        return token_user_id(decode_access_token(token)) == int(user_id)
    except ValueError:
        return False


__all__ = [
    "ALGORITHM",
    "create_access_token",
    "create_user_token",
    "decode_access_token",
    "token_user_id",
    "verify_user_token",
]
