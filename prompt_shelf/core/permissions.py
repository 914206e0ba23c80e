"""Permission Resolver — library access tiers and the invite → share lifecycle.

Owners hold an implicit admin grant and never have a share row. Everyone
else needs an accepted ``library_shares`` row, created only by accepting an
invite. Tiers are ordered read < write < admin.

Invite expiry is evaluated when an invite is read, by comparing
``expires_at`` with the current time; nothing sweeps expired rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any

import structlog

from prompt_shelf.config import get_settings
from prompt_shelf.core.audit import AuditLogger, get_audit_logger
from prompt_shelf.core.exceptions import (
    AlreadyHasAccess,
    CannotModifyOwner,
    DuplicatePendingInvite,
    EmailMismatch,
    InsufficientPermission,
    InvalidOrExpiredInvite,
    NoExistingAccess,
    NotFoundOrDenied,
    RowNotFound,
    UniqueViolation,
)
from prompt_shelf.db.client import SupabaseClient, get_supabase_client
from prompt_shelf.db.models import LibraryInviteRow
from prompt_shelf.utils.security import new_invite_token, normalize_email

logger = structlog.get_logger()

DEFAULT_INVITE_TTL = timedelta(days=7)


class Permission(str, Enum):
    """Access tier on a library."""

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return PERMISSION_RANK[self]


PERMISSION_RANK = {Permission.READ: 1, Permission.WRITE: 2, Permission.ADMIN: 3}


@dataclass(frozen=True)
class PermissionResult:
    """Effective access of one user on one library."""

    permission: Permission
    is_owner: bool
    can_read: bool
    can_write: bool
    can_admin: bool
    can_share: bool

    @classmethod
    def for_owner(cls) -> PermissionResult:
        return cls(
            permission=Permission.ADMIN,
            is_owner=True,
            can_read=True,
            can_write=True,
            can_admin=True,
            can_share=True,
        )

    @classmethod
    def for_share(cls, permission: Permission | str) -> PermissionResult:
        tier = Permission(permission)
        return cls(
            permission=tier,
            is_owner=False,
            can_read=True,
            can_write=tier in (Permission.WRITE, Permission.ADMIN),
            can_admin=tier is Permission.ADMIN,
            can_share=tier is Permission.ADMIN,
        )

    def satisfies(self, minimum: Permission | str) -> bool:
        return self.permission.rank >= Permission(minimum).rank


@dataclass
class AccessibleLibraries:
    """Libraries a user owns and libraries shared with them, newest first."""

    owned: list[dict[str, Any]] = field(default_factory=list)
    shared: list[dict[str, Any]] = field(default_factory=list)


def public_library(library: dict[str, Any]) -> dict[str, Any]:
    """Library row without its password hash."""
    return {k: v for k, v in library.items() if k != "password_hash"}


def _user_summary(user: dict[str, Any] | None) -> dict[str, Any] | None:
    if not user:
        return None
    return {"id": str(user["id"]), "name": user.get("name"), "email": user["email"]}


class PermissionResolver:
    """Resolves and enforces library permissions; manages invitations."""

    def __init__(
        self,
        db: SupabaseClient,
        audit: AuditLogger | None = None,
        invite_ttl: timedelta = DEFAULT_INVITE_TTL,
    ) -> None:
        self.db = db
        self.audit = audit
        self.invite_ttl = invite_ttl

    # --- Lookups ---

    def get_library(self, library_id: str) -> dict[str, Any] | None:
        rows = self.db.select("libraries", filters={"id": str(library_id)}, limit=1)
        return rows[0] if rows else None

    def _get_share(self, library_id: str, user_id: str) -> dict[str, Any] | None:
        rows = self.db.select(
            "library_shares",
            filters={"library_id": str(library_id), "user_id": str(user_id)},
        )
        accepted = [r for r in rows if r.get("accepted_at") is not None]
        return accepted[0] if accepted else None

    def _get_user(self, user_id: str) -> dict[str, Any] | None:
        rows = self.db.select("users", filters={"id": str(user_id)}, limit=1)
        return rows[0] if rows else None

    def _get_user_by_email(self, email: str) -> dict[str, Any] | None:
        rows = self.db.select("users", filters={"email": email}, limit=1)
        return rows[0] if rows else None

    def _users_by_id(self, user_ids: set[str]) -> dict[str, dict[str, Any]]:
        users = self.db.select_in("users", "id", sorted(user_ids))
        return {str(u["id"]): u for u in users}

    @staticmethod
    def _is_live(invite: dict[str, Any], now: datetime) -> bool:
        row = LibraryInviteRow.model_validate(invite)
        return row.accepted_at is None and row.expires_at > now

    def _find_live_invite(self, token: str) -> dict[str, Any] | None:
        now = datetime.now(timezone.utc)
        rows = self.db.select("library_invites", filters={"token": token}, limit=1)
        live = [r for r in rows if self._is_live(r, now)]
        return live[0] if live else None

    # --- Resolution ---

    def _resolve(
        self, library_id: str, user_id: str
    ) -> tuple[dict[str, Any] | None, PermissionResult | None]:
        library = self.get_library(library_id)
        if library is None:
            return None, None

        if str(library["owner_id"]) == str(user_id):
            return library, PermissionResult.for_owner()

        share = self._get_share(library_id, user_id)
        if share is None:
            return library, None
        return library, PermissionResult.for_share(share["permission"])

    def resolve(self, library_id: str, user_id: str) -> PermissionResult | None:
        """Effective permission of ``user_id`` on ``library_id``, or None for no access.

        Callers must not distinguish "no such library" from "no access".
        """
        _, result = self._resolve(library_id, user_id)
        return result

    def require_library(
        self,
        library_id: str,
        user_id: str,
        minimum: Permission | str = Permission.READ,
    ) -> tuple[dict[str, Any], PermissionResult]:
        """Like ``require`` but also hands back the library row."""
        library, result = self._resolve(library_id, user_id)
        if library is None or result is None:
            raise NotFoundOrDenied()
        if not result.satisfies(minimum):
            raise InsufficientPermission()
        return library, result

    def require(
        self,
        library_id: str,
        user_id: str,
        minimum: Permission | str = Permission.READ,
    ) -> PermissionResult:
        """Resolve and demand at least ``minimum``.

        Raises NotFoundOrDenied when there is no access at all and
        InsufficientPermission when the tier is too low.
        """
        _, result = self.require_library(library_id, user_id, minimum)
        return result

    def list_accessible(self, user_id: str) -> AccessibleLibraries:
        """Owned and shared libraries, each list most recently updated first."""
        owned = self.db.select(
            "libraries",
            filters={"owner_id": str(user_id)},
            order_by="updated_at",
            ascending=False,
        )

        shares = [
            s
            for s in self.db.select("library_shares", filters={"user_id": str(user_id)})
            if s.get("accepted_at") is not None
        ]
        permission_by_library = {str(s["library_id"]): s["permission"] for s in shares}
        shared_libraries = self.db.select_in(
            "libraries",
            "id",
            list(permission_by_library),
            order_by="updated_at",
            ascending=False,
        )
        owners = self._users_by_id({str(lib["owner_id"]) for lib in shared_libraries})

        return AccessibleLibraries(
            owned=[public_library(lib) for lib in owned],
            shared=[
                {
                    **public_library(lib),
                    "permission": permission_by_library[str(lib["id"])],
                    "owner": _user_summary(owners.get(str(lib["owner_id"]))),
                }
                for lib in shared_libraries
            ],
        )

    def list_shares(self, library_id: str, user_id: str) -> dict[str, list[dict[str, Any]]]:
        """Accepted shares and live pending invites of a library (admin only)."""
        self.require(library_id, user_id, Permission.ADMIN)

        shares = self.db.select(
            "library_shares",
            filters={"library_id": str(library_id)},
            order_by="created_at",
            ascending=False,
        )
        now = datetime.now(timezone.utc)
        invites = [
            i
            for i in self.db.select(
                "library_invites",
                filters={"library_id": str(library_id)},
                order_by="created_at",
                ascending=False,
            )
            if self._is_live(i, now)
        ]

        people = self._users_by_id(
            {str(s["user_id"]) for s in shares}
            | {str(s["invited_by"]) for s in shares if s.get("invited_by")}
            | {str(i["invited_by"]) for i in invites}
        )

        return {
            "shares": [
                {
                    "user_id": str(s["user_id"]),
                    "permission": s["permission"],
                    "accepted_at": s["accepted_at"],
                    "created_at": s.get("created_at"),
                    "user": _user_summary(people.get(str(s["user_id"]))),
                    "inviter": _user_summary(people.get(str(s.get("invited_by")))),
                }
                for s in shares
            ],
            "pending_invites": [
                {
                    "id": str(i["id"]),
                    "email": i["email"],
                    "permission": i["permission"],
                    "created_at": i.get("created_at"),
                    "expires_at": i["expires_at"],
                    "inviter": _user_summary(people.get(str(i["invited_by"]))),
                }
                for i in invites
            ],
        }

    # --- Invitations ---

    def create_invite(
        self,
        library_id: str,
        inviter_user_id: str,
        email: str,
        permission: Permission | str,
    ) -> str:
        """Offer ``permission`` on a library to ``email``. Returns the bearer token."""
        library, _ = self.require_library(library_id, inviter_user_id, Permission.ADMIN)
        email = normalize_email(email)
        tier = Permission(permission)

        existing_user = self._get_user_by_email(email)
        if existing_user is not None:
            existing_id = str(existing_user["id"])
            if existing_id == str(library["owner_id"]) or self._get_share(library_id, existing_id):
                raise AlreadyHasAccess()

        now = datetime.now(timezone.utc)
        invites = self.db.select(
            "library_invites", filters={"library_id": str(library_id), "email": email}
        )
        if any(self._is_live(i, now) for i in invites):
            raise DuplicatePendingInvite()

        # Expired, never-accepted invites would otherwise hold the pending slot
        for stale in invites:
            if stale.get("accepted_at") is None and not self._is_live(stale, now):
                self.db.delete("library_invites", stale["id"])

        token = new_invite_token()
        expires_at = now + self.invite_ttl
        try:
            invite = self.db.insert(
                "library_invites",
                {
                    "library_id": str(library_id),
                    "email": email,
                    "permission": tier.value,
                    "invited_by": str(inviter_user_id),
                    "token": token,
                    "expires_at": expires_at.isoformat(),
                    "accepted_at": None,
                },
            )
        except UniqueViolation as e:
            # A concurrent request won the race past the duplicate check
            raise DuplicatePendingInvite() from e

        logger.info(
            "invite.created",
            library_id=str(library_id),
            invite_id=str(invite["id"]),
            permission=tier.value,
        )
        if self.audit:
            self.audit.log_library(
                "invite.created",
                library_id,
                inviter_user_id,
                email=email,
                permission=tier.value,
                expires_at=expires_at.isoformat(),
            )
        return token

    def get_invite(self, token: str) -> dict[str, Any]:
        """Public preview of a live invite."""
        invite = self._find_live_invite(token)
        if invite is None:
            raise InvalidOrExpiredInvite()

        library = self.get_library(invite["library_id"])
        if library is None:
            raise InvalidOrExpiredInvite()
        inviter = self._get_user(invite["invited_by"])

        return {
            "email": invite["email"],
            "permission": invite["permission"],
            "library": {
                "id": str(library["id"]),
                "name": library["name"],
                "description": library.get("description"),
                "color": library.get("color"),
            },
            "inviter": _user_summary(inviter),
            "created_at": invite.get("created_at"),
            "expires_at": invite["expires_at"],
        }

    def accept_invite(self, token: str, accepting_user_id: str) -> dict[str, Any]:
        """Turn a live invite into a share for the accepting user.

        The share insert and the invite stamp happen in one database
        transaction (``accept_library_invite``).
        """
        invite = self._find_live_invite(token)
        if invite is None:
            raise InvalidOrExpiredInvite()

        user = self._get_user(accepting_user_id)
        if user is None or normalize_email(user["email"]) != normalize_email(invite["email"]):
            raise EmailMismatch()

        library = self.get_library(invite["library_id"])
        if library is None:
            raise InvalidOrExpiredInvite()
        if str(library["owner_id"]) == str(accepting_user_id) or self._get_share(
            invite["library_id"], accepting_user_id
        ):
            raise AlreadyHasAccess("You already have access to this library")

        try:
            self.db.rpc(
                "accept_library_invite",
                {"p_invite_id": str(invite["id"]), "p_user_id": str(accepting_user_id)},
            )
        except UniqueViolation as e:
            raise AlreadyHasAccess("You already have access to this library") from e
        except RowNotFound as e:
            # Accepted or expired between the read above and the transaction
            raise InvalidOrExpiredInvite() from e

        logger.info(
            "invite.accepted",
            library_id=str(library["id"]),
            invite_id=str(invite["id"]),
            user_id=str(accepting_user_id),
        )
        if self.audit:
            self.audit.log_library(
                "invite.accepted",
                library["id"],
                accepting_user_id,
                email=invite["email"],
                permission=invite["permission"],
            )
        return public_library(library)

    # --- Existing shares ---

    def update_permission(
        self,
        library_id: str,
        target_user_id: str,
        new_permission: Permission | str,
        requesting_user_id: str,
    ) -> dict[str, Any]:
        """Change a shared user's tier in place."""
        library, _ = self.require_library(library_id, requesting_user_id, Permission.ADMIN)
        tier = Permission(new_permission)

        if str(library["owner_id"]) == str(target_user_id):
            raise CannotModifyOwner("Cannot change owner permissions")

        updated = self.db.update_where(
            "library_shares",
            {"library_id": str(library_id), "user_id": str(target_user_id)},
            {"permission": tier.value},
        )
        if not updated:
            raise NoExistingAccess()

        logger.info(
            "share.updated",
            library_id=str(library_id),
            user_id=str(target_user_id),
            permission=tier.value,
        )
        if self.audit:
            self.audit.log_library(
                "share.updated",
                library_id,
                requesting_user_id,
                user_id=str(target_user_id),
                permission=tier.value,
            )
        return updated[0]

    def revoke_access(
        self, library_id: str, target_user_id: str, requesting_user_id: str
    ) -> None:
        """Delete a shared user's grant."""
        library, _ = self.require_library(library_id, requesting_user_id, Permission.ADMIN)

        if str(library["owner_id"]) == str(target_user_id):
            raise CannotModifyOwner("Cannot remove owner access")

        deleted = self.db.delete_where(
            "library_shares",
            {"library_id": str(library_id), "user_id": str(target_user_id)},
        )
        if deleted == 0:
            raise NoExistingAccess()

        logger.info("share.revoked", library_id=str(library_id), user_id=str(target_user_id))
        if self.audit:
            self.audit.log_library(
                "share.revoked", library_id, requesting_user_id, user_id=str(target_user_id)
            )


@lru_cache
def get_permission_resolver() -> PermissionResolver:
    """Get cached resolver instance."""
    settings = get_settings()
    return PermissionResolver(
        get_supabase_client(),
        audit=get_audit_logger(),
        invite_ttl=timedelta(days=settings.invite_ttl_days),
    )
