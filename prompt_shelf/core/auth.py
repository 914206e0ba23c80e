"""Accounts and sessions.

A session is a signed token carrying the user's identity and the set of
private libraries unlocked during that session. Changing the unlocked set
means issuing a new token; nothing is remembered server-side.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Any

import structlog

from prompt_shelf.core.exceptions import (
    AuthenticationFailed,
    EmailAlreadyRegistered,
    UniqueViolation,
    ValidationFailed,
)
from prompt_shelf.db.client import SupabaseClient, get_supabase_client
from prompt_shelf.db.models import UserRow
from prompt_shelf.utils.security import (
    MIN_PASSWORD_LENGTH,
    decode_session,
    encode_session,
    hash_password,
    normalize_email,
    validate_email,
    validate_password,
    verify_password,
)

logger = structlog.get_logger()

MAX_NAME_LENGTH = 100


@dataclass(frozen=True)
class SessionUser:
    """The authenticated caller, as carried by the session token."""

    id: str
    email: str
    name: str | None = None
    unlocked: frozenset[str] = field(default_factory=frozenset)

    def is_unlocked(self, library_id: str) -> bool:
        return str(library_id) in self.unlocked

    def with_unlocked(self, library_id: str) -> SessionUser:
        return replace(self, unlocked=self.unlocked | {str(library_id)})

    def without_unlocked(self, library_id: str) -> SessionUser:
        return replace(self, unlocked=self.unlocked - {str(library_id)})

    def cleared(self) -> SessionUser:
        return replace(self, unlocked=frozenset())


def create_session_token(user: SessionUser) -> str:
    """Sign ``user`` into a session token."""
    return encode_session(
        {
            "sub": user.id,
            "email": user.email,
            "name": user.name,
            "unlocked": sorted(user.unlocked),
        }
    )


def decode_session_token(token: str) -> SessionUser:
    """Rebuild the caller from a session token. Raises AuthenticationFailed."""
    claims = decode_session(token)
    return SessionUser(
        id=str(claims["sub"]),
        email=claims.get("email", ""),
        name=claims.get("name"),
        unlocked=frozenset(str(x) for x in claims.get("unlocked") or ()),
    )


def _session_user(row: UserRow) -> SessionUser:
    return SessionUser(id=str(row.id), email=row.email, name=row.name)


class AuthService:
    """Signup, login and user lookup."""

    def __init__(self, db: SupabaseClient) -> None:
        self.db = db

    def _find_by_email(self, email: str) -> UserRow | None:
        rows = self.db.select("users", filters={"email": email}, limit=1)
        return UserRow(**rows[0]) if rows else None

    def signup(self, email: str, password: str, name: str | None = None) -> SessionUser:
        email = normalize_email(email)
        if not validate_email(email):
            raise ValidationFailed("Invalid email address")
        if not validate_password(password):
            raise ValidationFailed(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if name is not None:
            name = name.strip() or None
            if name and len(name) > MAX_NAME_LENGTH:
                raise ValidationFailed(f"Name must be at most {MAX_NAME_LENGTH} characters")

        if self._find_by_email(email) is not None:
            raise EmailAlreadyRegistered()

        try:
            row = self.db.insert(
                "users",
                {"email": email, "password_hash": hash_password(password), "name": name},
            )
        except UniqueViolation as e:
            raise EmailAlreadyRegistered() from e

        user = UserRow(**row)
        logger.info("user.registered", user_id=str(user.id))
        return _session_user(user)

    def authenticate(self, email: str, password: str) -> SessionUser:
        """Check credentials. Unknown email and wrong password fail the same way."""
        user = self._find_by_email(normalize_email(email))
        if user is None or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed")
            raise AuthenticationFailed()

        logger.info("auth.login", user_id=str(user.id))
        return _session_user(user)

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        rows = self.db.select("users", filters={"id": str(user_id)}, limit=1)
        if not rows:
            return None
        user = UserRow(**rows[0])
        return {
            "id": str(user.id),
            "email": user.email,
            "name": user.name,
            "created_at": user.created_at.isoformat(),
        }


@lru_cache
def get_auth_service() -> AuthService:
    """Get cached auth service instance."""
    return AuthService(get_supabase_client())
