"""Invite preview and acceptance."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from prompt_shelf.api.deps import get_current_user
from prompt_shelf.api.models import InviteAccept, InvitePreviewResponse, LibraryResponse
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.permissions import PermissionResolver, get_permission_resolver

router = APIRouter()


@router.get("/{token}", response_model=InvitePreviewResponse)
async def preview_invite(
    token: str,
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> InvitePreviewResponse:
    """What the invite offers. Needs no session."""
    return InvitePreviewResponse(**resolver.get_invite(token))


@router.post("/accept", response_model=LibraryResponse)
async def accept_invite(
    data: InviteAccept,
    user: SessionUser = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> LibraryResponse:
    """Redeem an invite addressed to the caller's email."""
    return LibraryResponse(**resolver.accept_invite(data.token, user.id))
