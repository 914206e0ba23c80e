"""Sharing endpoints — list, invite, change tier, revoke."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from prompt_shelf.api.deps import get_current_user
from prompt_shelf.api.models import (
    InviteCreate,
    InviteCreatedResponse,
    PermissionUpdate,
    SharesResponse,
)
from prompt_shelf.config import get_settings
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.permissions import PermissionResolver, get_permission_resolver
from prompt_shelf.utils.security import normalize_email

router = APIRouter()


def invite_url(token: str) -> str:
    return f"{get_settings().public_base_url.rstrip('/')}/invite/{token}"


@router.get("/{library_id}/shares", response_model=SharesResponse)
async def list_shares(
    library_id: UUID,
    user: SessionUser = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> SharesResponse:
    """Accepted shares and pending invites (admin only)."""
    return SharesResponse(**resolver.list_shares(str(library_id), user.id))


@router.post("/{library_id}/shares", response_model=InviteCreatedResponse, status_code=201)
async def invite(
    library_id: UUID,
    data: InviteCreate,
    user: SessionUser = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> InviteCreatedResponse:
    """Invite an email address. The token is only ever returned here."""
    token = resolver.create_invite(str(library_id), user.id, data.email, data.permission)
    return InviteCreatedResponse(
        token=token,
        invite_url=invite_url(token),
        email=normalize_email(data.email),
        permission=data.permission,
    )


@router.put("/{library_id}/shares/{user_id}")
async def update_share(
    library_id: UUID,
    user_id: UUID,
    data: PermissionUpdate,
    user: SessionUser = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> dict:
    share = resolver.update_permission(str(library_id), str(user_id), data.permission, user.id)
    return {"user_id": str(share["user_id"]), "permission": share["permission"]}


@router.delete("/{library_id}/shares/{user_id}", status_code=204)
async def revoke_share(
    library_id: UUID,
    user_id: UUID,
    user: SessionUser = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> None:
    resolver.revoke_access(str(library_id), str(user_id), user.id)
