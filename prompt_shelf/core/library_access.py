"""Library access gate — password unlock of private libraries.

Tier resolution decides *whether* a user may touch a library; the gate adds
that a private library must also have been unlocked in the current session.
It applies to every caller, owners included. Owners skip the password by
marking the library accessible.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import structlog

from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.exceptions import (
    InsufficientPermission,
    InvalidLibraryPassword,
    LibraryLocked,
    ValidationFailed,
)
from prompt_shelf.core.permissions import (
    Permission,
    PermissionResolver,
    PermissionResult,
    get_permission_resolver,
)
from prompt_shelf.utils.security import verify_password

logger = structlog.get_logger()


def is_locked(library: dict[str, Any], actor: SessionUser) -> bool:
    return bool(library.get("is_private")) and not actor.is_unlocked(library["id"])


class LibraryAccessGate:
    """Combines tier checks with the per-session unlocked set."""

    def __init__(self, resolver: PermissionResolver) -> None:
        self.resolver = resolver

    def authorize(
        self,
        library_id: str,
        actor: SessionUser,
        minimum: Permission | str = Permission.READ,
    ) -> tuple[dict[str, Any], PermissionResult]:
        """Resolve ``actor``'s tier and refuse locked private libraries."""
        library, permission = self.resolver.require_library(library_id, actor.id, minimum)
        if is_locked(library, actor):
            raise LibraryLocked(
                "Library is locked. Please enter the password to access it."
            )
        return library, permission

    def unlock(self, library_id: str, password: str, actor: SessionUser) -> SessionUser:
        """Verify the library password and return the actor with it unlocked."""
        library, _ = self.resolver.require_library(library_id, actor.id, Permission.READ)

        if not library.get("is_private"):
            raise ValidationFailed("Library is not private")
        if not library.get("password_hash"):
            raise ValidationFailed("Library has no password set")

        if not verify_password(password, library["password_hash"]):
            logger.info("library.unlock_failed", library_id=str(library_id), user_id=actor.id)
            raise InvalidLibraryPassword()

        logger.info("library.unlocked", library_id=str(library_id), user_id=actor.id)
        return actor.with_unlocked(library["id"])

    def mark_accessible(self, library_id: str, actor: SessionUser) -> SessionUser:
        """Owner-only unlock without a password."""
        _, permission = self.resolver.require_library(library_id, actor.id, Permission.READ)
        if not permission.is_owner:
            raise InsufficientPermission("Only the owner can mark a library as accessible")
        return actor.with_unlocked(library_id)

    def lock(self, library_id: str, actor: SessionUser) -> SessionUser:
        logger.info("library.locked", library_id=str(library_id), user_id=actor.id)
        return actor.without_unlocked(library_id)

    def clear(self, actor: SessionUser) -> SessionUser:
        return actor.cleared()


@lru_cache
def get_access_gate() -> LibraryAccessGate:
    """Get cached access gate instance."""
    return LibraryAccessGate(get_permission_resolver())
