"""Security utilities — password hashing, bearer tokens, session JWTs."""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from prompt_shelf.config import get_settings
from prompt_shelf.core.exceptions import AuthenticationFailed

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

# 32 bytes -> 256 bits of entropy, 43 URL-safe characters
INVITE_TOKEN_BYTES = 32


@lru_cache
def _password_context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=get_settings().bcrypt_rounds,
    )


def hash_password(password: str) -> str:
    """Hash a user or library password with bcrypt."""
    return _password_context().hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    return _password_context().verify(password, hashed_password)


def normalize_email(email: str) -> str:
    """Canonical form used for storage and every comparison."""
    return email.strip().lower()


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_password(password: str) -> bool:
    return len(password) >= MIN_PASSWORD_LENGTH


def new_invite_token() -> str:
    """Unguessable, URL-safe bearer token for invite-accept links.

    Pure randomness: nothing about the library, the email or the clock goes in.
    """
    return secrets.token_urlsafe(INVITE_TOKEN_BYTES)


def encode_session(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Sign session claims into a JWT."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.session_ttl_days))
    to_encode = {**claims, "iat": now, "exp": expire, "type": "session"}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session(token: str) -> dict[str, Any]:
    """Verify a session JWT and return its claims.

    Raises AuthenticationFailed for bad signatures, expiry, or foreign tokens.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationFailed("Invalid or expired session") from e
    if payload.get("type") != "session" or not payload.get("sub"):
        raise AuthenticationFailed("Invalid or expired session")
    return payload
