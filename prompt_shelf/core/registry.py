"""Library Registry — CRUD for libraries and the groups inside them."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import structlog

from prompt_shelf.core.audit import AuditLogger, get_audit_logger
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.exceptions import (
    InsufficientPermission,
    NotFoundOrDenied,
    ValidationFailed,
)
from prompt_shelf.core.library_access import LibraryAccessGate, get_access_gate, is_locked
from prompt_shelf.core.permissions import (
    Permission,
    PermissionResolver,
    PermissionResult,
    public_library,
)
from prompt_shelf.core.validation import (
    MAX_NOTES_LENGTH,
    clean_color,
    clean_name,
    clean_optional_text,
)
from prompt_shelf.db.client import SupabaseClient, get_supabase_client
from prompt_shelf.utils.security import hash_password

logger = structlog.get_logger()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _permission_view(result: PermissionResult) -> dict[str, Any]:
    return {
        "permission": result.permission.value,
        "is_owner": result.is_owner,
        "can_read": result.can_read,
        "can_write": result.can_write,
        "can_admin": result.can_admin,
        "can_share": result.can_share,
    }


class LibraryRegistry:
    """Manages libraries and groups on behalf of an authenticated caller."""

    def __init__(
        self,
        db: SupabaseClient,
        gate: LibraryAccessGate,
        audit: AuditLogger | None = None,
    ) -> None:
        self.db = db
        self.gate = gate
        self.audit = audit

    @property
    def resolver(self) -> PermissionResolver:
        return self.gate.resolver

    def _require_owner(self, library_id: str, actor: SessionUser) -> dict[str, Any]:
        library, permission = self.gate.authorize(library_id, actor, Permission.READ)
        if not permission.is_owner:
            raise InsufficientPermission("Only the library owner can do this")
        return library

    def _audit(self, action: str, library_id: str, actor: SessionUser, **details: Any) -> None:
        if self.audit:
            self.audit.log_library(action, library_id, actor.id, **details)

    # --- Libraries ---

    def list_libraries(self, actor: SessionUser) -> dict[str, list[dict[str, Any]]]:
        """Owned and shared libraries, each flagged with its lock state."""
        accessible = self.resolver.list_accessible(actor.id)
        return {
            "owned": [
                {**lib, "is_locked": is_locked(lib, actor)} for lib in accessible.owned
            ],
            "shared": [
                {**lib, "is_locked": is_locked(lib, actor)} for lib in accessible.shared
            ],
        }

    def create_library(
        self,
        actor: SessionUser,
        name: str,
        description: str | None = None,
        color: str | None = None,
        is_private: bool = False,
        password: str | None = None,
        password_hint: str | None = None,
    ) -> dict[str, Any]:
        """Create a library owned by ``actor``. Private libraries need a password."""
        data: dict[str, Any] = {
            "name": clean_name(name, "Library name"),
            "description": clean_optional_text(description, MAX_NOTES_LENGTH, "Description"),
            "color": clean_color(color),
            "is_private": bool(is_private),
            "password_hash": None,
            "password_hint": None,
            "owner_id": actor.id,
        }
        if is_private:
            if not (password or "").strip():
                raise ValidationFailed("Password is required for private libraries")
            data["password_hash"] = hash_password(password)
            data["password_hint"] = clean_optional_text(password_hint)

        library = self.db.insert("libraries", data)
        logger.info("library.created", library_id=str(library["id"]), private=bool(is_private))
        self._audit("library.created", library["id"], actor, name=data["name"])
        return public_library(library)

    def get_library(
        self, library_id: str, actor: SessionUser
    ) -> tuple[dict[str, Any], SessionUser]:
        """Library detail for any tier.

        The owner's read marks the library accessible, so the returned caller
        may carry a new unlocked entry. Locked libraries are described but
        their groups are withheld.
        """
        library, permission = self.resolver.require_library(library_id, actor.id)
        if permission.is_owner and library.get("is_private"):
            actor = self.gate.mark_accessible(library_id, actor)

        locked = is_locked(library, actor)
        view = {
            **public_library(library),
            "is_locked": locked,
            "permission": _permission_view(permission),
            "groups": [] if locked else self._groups_with_counts(library["id"]),
        }
        return view, actor

    def get_permission(self, library_id: str, actor: SessionUser) -> dict[str, Any]:
        library, permission = self.resolver.require_library(library_id, actor.id)
        return {
            "library_id": str(library["id"]),
            **_permission_view(permission),
            "is_locked": is_locked(library, actor),
        }

    def update_library(
        self,
        library_id: str,
        actor: SessionUser,
        name: str,
        description: str | None = None,
        color: str | None = None,
        is_private: bool = False,
        password: str | None = None,
        password_hint: str | None = None,
    ) -> dict[str, Any]:
        """Owner-only full update.

        Going public clears the password. Staying private without a new
        password keeps the stored hash, and fails if there is none.
        """
        existing = self._require_owner(library_id, actor)

        data: dict[str, Any] = {
            "name": clean_name(name, "Library name"),
            "description": clean_optional_text(description, MAX_NOTES_LENGTH, "Description"),
            "color": clean_color(color),
            "is_private": bool(is_private),
            "updated_at": _now(),
        }
        new_password = (password or "").strip()
        if is_private:
            if not new_password and not existing.get("password_hash"):
                raise ValidationFailed("Password is required for private libraries")
            if new_password:
                data["password_hash"] = hash_password(password)
            data["password_hint"] = clean_optional_text(password_hint)
        else:
            data["password_hash"] = None
            data["password_hint"] = None

        updated = self.db.update("libraries", existing["id"], data)
        logger.info("library.updated", library_id=str(library_id))
        self._audit(
            "library.updated",
            library_id,
            actor,
            is_private=data["is_private"],
            password_changed=bool(is_private and new_password),
        )
        return public_library(updated)

    def delete_library(self, library_id: str, actor: SessionUser) -> None:
        """Owner-only. Groups, prompts, shares and invites go with it."""
        library = self._require_owner(library_id, actor)
        self.db.delete("libraries", library["id"])
        logger.info("library.deleted", library_id=str(library_id))
        self._audit("library.deleted", library_id, actor, name=library["name"])

    # --- Groups ---

    def _groups_with_counts(self, library_id: str) -> list[dict[str, Any]]:
        groups = self.db.select(
            "groups", filters={"library_id": str(library_id)}, order_by="sort_order"
        )
        prompts = self.db.select_in("prompts", "group_id", [str(g["id"]) for g in groups])
        counts = Counter(str(p["group_id"]) for p in prompts)
        return [{**g, "prompt_count": counts.get(str(g["id"]), 0)} for g in groups]

    def find_group(self, group_id: str) -> dict[str, Any] | None:
        rows = self.db.select("groups", filters={"id": str(group_id)}, limit=1)
        return rows[0] if rows else None

    def authorize_group(
        self,
        group_id: str,
        actor: SessionUser,
        minimum: Permission | str = Permission.READ,
    ) -> tuple[dict[str, Any], dict[str, Any], PermissionResult]:
        """Group, its library and the caller's tier, through the access gate.

        A missing group and an invisible library fail the same way.
        """
        group = self.find_group(group_id)
        if group is None:
            raise NotFoundOrDenied("Group not found")
        try:
            library, permission = self.gate.authorize(group["library_id"], actor, minimum)
        except NotFoundOrDenied as e:
            raise NotFoundOrDenied("Group not found") from e
        return group, library, permission

    def list_groups(self, library_id: str, actor: SessionUser) -> list[dict[str, Any]]:
        """Groups in sort order, each with its prompt count."""
        self.gate.authorize(library_id, actor, Permission.READ)
        return self._groups_with_counts(library_id)

    def get_group(self, group_id: str, actor: SessionUser) -> dict[str, Any]:
        group, _, _ = self.authorize_group(group_id, actor)
        prompts = self.db.select("prompts", filters={"group_id": str(group["id"])})
        return {**group, "prompt_count": len(prompts)}

    def create_group(
        self,
        library_id: str,
        actor: SessionUser,
        name: str,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Append a group to the library (sort order max + 1)."""
        self.gate.authorize(library_id, actor, Permission.WRITE)

        existing = self.db.select("groups", filters={"library_id": str(library_id)})
        next_order = max((g.get("sort_order") or 0 for g in existing), default=0) + 1

        group = self.db.insert(
            "groups",
            {
                "library_id": str(library_id),
                "name": clean_name(name, "Group name"),
                "description": clean_optional_text(description, MAX_NOTES_LENGTH, "Description"),
                "sort_order": next_order,
            },
        )
        logger.info("group.created", group_id=str(group["id"]), library_id=str(library_id))
        return {**group, "prompt_count": 0}

    def update_group(
        self,
        group_id: str,
        actor: SessionUser,
        name: str,
        description: str | None = None,
        sort_order: int | None = None,
    ) -> dict[str, Any]:
        group, _, _ = self.authorize_group(group_id, actor, Permission.WRITE)

        data: dict[str, Any] = {
            "name": clean_name(name, "Group name"),
            "description": clean_optional_text(description, MAX_NOTES_LENGTH, "Description"),
            "updated_at": _now(),
        }
        if sort_order is not None:
            data["sort_order"] = sort_order

        updated = self.db.update("groups", group["id"], data)
        logger.info("group.updated", group_id=str(group_id))
        prompts = self.db.select("prompts", filters={"group_id": str(group["id"])})
        return {**updated, "prompt_count": len(prompts)}

    def delete_group(self, group_id: str, actor: SessionUser) -> None:
        """Delete a group and its prompts."""
        group, _, _ = self.authorize_group(group_id, actor, Permission.WRITE)
        self.db.delete("groups", group["id"])
        logger.info("group.deleted", group_id=str(group_id))


@lru_cache
def get_registry() -> LibraryRegistry:
    """Get cached registry instance."""
    return LibraryRegistry(get_supabase_client(), get_access_gate(), get_audit_logger())
