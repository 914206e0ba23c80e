"""Audit Logger — who changed a library, its password gate or its members.

Entries are append-only rows in ``audit_log``. Library-scoped events use
``entity_type="library"`` with the library id as ``entity_id``; details never
carry passwords, hashes or invite tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import structlog

from prompt_shelf.db.client import SupabaseClient, get_supabase_client

logger = structlog.get_logger()

LIBRARY_ENTITY = "library"


def _parse_ts(value: datetime | str) -> datetime:
    ts = datetime.fromisoformat(value) if isinstance(value, str) else value
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class AuditEntry:
    id: str
    action: str
    entity_type: str
    entity_id: str | None
    actor: str
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> AuditEntry:
        return cls(
            id=str(row["id"]),
            action=row["action"],
            entity_type=row["entity_type"],
            entity_id=str(row["entity_id"]) if row.get("entity_id") else None,
            actor=str(row["actor"]),
            created_at=_parse_ts(row["created_at"]),
            details=dict(row.get("details") or {}),
        )


class AuditLogger:
    """Writes and reads the audit trail."""

    def __init__(self, db: SupabaseClient) -> None:
        self.db = db

    def log(
        self,
        action: str,
        entity_type: str,
        entity_id: str | None = None,
        actor: str = "system",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        row = self.db.insert(
            "audit_log",
            {
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "actor": actor,
                "details": details or {},
            },
        )
        logger.info("audit.logged", action=action, entity_id=entity_id, actor=actor)
        return row

    def log_library(
        self, action: str, library_id: str, actor: str, **details: Any
    ) -> dict[str, Any]:
        """Record an event against one library."""
        return self.log(action, LIBRARY_ENTITY, str(library_id), str(actor), details)

    def query(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        actor: str | None = None,
        action: str | None = None,
        since: datetime | str | None = None,
        until: datetime | str | None = None,
        limit: int = 50,
    ) -> list[AuditEntry]:
        """Matching entries, newest first. ``since``/``until`` are inclusive."""
        wanted = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "actor": actor,
            "action": action,
        }
        filters = {k: v for k, v in wanted.items() if v}
        windowed = bool(since or until)
        rows = self.db.select(
            "audit_log",
            filters=filters or None,
            order_by="created_at",
            ascending=False,
            limit=None if windowed else limit,
        )
        if not windowed:
            return [AuditEntry.from_row(r) for r in rows]

        low = _parse_ts(since) if since else None
        high = _parse_ts(until) if until else None
        entries = (AuditEntry.from_row(r) for r in rows)
        window = [
            e
            for e in entries
            if (low is None or e.created_at >= low) and (high is None or e.created_at <= high)
        ]
        return window[:limit]

    def library_trail(self, library_id: str, **kwargs: Any) -> list[AuditEntry]:
        """Shorthand for the entries of one library."""
        return self.query(entity_type=LIBRARY_ENTITY, entity_id=str(library_id), **kwargs)


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Get cached audit logger instance."""
    return AuditLogger(get_supabase_client())
