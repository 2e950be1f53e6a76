"""
Password hashing and bearer token helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from forum.config import get_settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class InvalidTokenError(ValueError):
    """Raised when a bearer token cannot be verified."""


def hash_password(password: str) -> str:
    settings = get_settings()
    return pwd_context.hash(password + settings.password_pepper)


def verify_password(plain: str, hashed: str) -> bool:
    settings = get_settings()
    try:
        return pwd_context.verify(plain + settings.password_pepper, hashed)
    except ValueError:
        # Unrecognised hash format in the store.
        return False


def create_access_token(
    user_id: int, expires_delta: timedelta | None = None
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(
        to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc


def user_id_from_token(token: str) -> int:
    """Verify a token and return the positive integer user id it carries."""
    payload = decode_token(token)
    subject = payload.get("sub")
    if not isinstance(subject, str) or not (subject.isascii() and subject.isdigit()):
        raise InvalidTokenError("token subject is not a user id")
    user_id = int(subject)
    if user_id <= 0:
        raise InvalidTokenError("token subject is not a user id")
    return user_id
