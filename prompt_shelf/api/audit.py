"""Audit trail endpoint for a library (admin only)."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from prompt_shelf.api.deps import get_current_user
from prompt_shelf.api.models import AuditEntryResponse
from prompt_shelf.core.audit import AuditLogger, get_audit_logger
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.permissions import Permission, PermissionResolver, get_permission_resolver

router = APIRouter()


@router.get("/{library_id}/audit", response_model=list[AuditEntryResponse])
async def library_audit(
    library_id: UUID,
    action: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    user: SessionUser = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    audit: AuditLogger = Depends(get_audit_logger),
) -> list[AuditEntryResponse]:
    """Sharing and library changes, newest first."""
    resolver.require(str(library_id), user.id, Permission.ADMIN)
    entries = audit.library_trail(
        str(library_id), action=action, since=since, until=until, limit=limit
    )
    return [AuditEntryResponse.model_validate(e, from_attributes=True) for e in entries]
