"""Library endpoints — CRUD, permission lookup and the password gate."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response

from prompt_shelf.api.deps import get_current_user, issue_session
from prompt_shelf.api.models import (
    LibraryCreate,
    LibraryDetailResponse,
    LibraryListResponse,
    LibraryPermissionResponse,
    LibraryResponse,
    LibraryUpdate,
    SessionResponse,
    UnlockRequest,
)
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.library_access import LibraryAccessGate, get_access_gate
from prompt_shelf.core.registry import LibraryRegistry, get_registry

router = APIRouter()


@router.get("", response_model=LibraryListResponse)
async def list_libraries(
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> LibraryListResponse:
    """Libraries the caller owns and libraries shared with them."""
    return LibraryListResponse(**registry.list_libraries(user))


@router.post("", response_model=LibraryResponse, status_code=201)
async def create_library(
    data: LibraryCreate,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> LibraryResponse:
    library = registry.create_library(user, **data.model_dump())
    return LibraryResponse(**library)


@router.get("/{library_id}", response_model=LibraryDetailResponse)
async def get_library(
    library_id: UUID,
    response: Response,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> LibraryDetailResponse:
    """Library detail with groups. An owner's read unlocks a private library."""
    view, updated_user = registry.get_library(str(library_id), user)
    session = issue_session(response, updated_user) if updated_user != user else None
    return LibraryDetailResponse(**view, session=session)


@router.put("/{library_id}", response_model=LibraryResponse)
async def update_library(
    library_id: UUID,
    data: LibraryUpdate,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> LibraryResponse:
    library = registry.update_library(str(library_id), user, **data.model_dump())
    return LibraryResponse(**library)


@router.delete("/{library_id}", status_code=204)
async def delete_library(
    library_id: UUID,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> None:
    registry.delete_library(str(library_id), user)


@router.get("/{library_id}/permission", response_model=LibraryPermissionResponse)
async def get_permission(
    library_id: UUID,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> LibraryPermissionResponse:
    """The caller's effective tier on a library."""
    return LibraryPermissionResponse(**registry.get_permission(str(library_id), user))


@router.post("/{library_id}/unlock", response_model=SessionResponse)
async def unlock_library(
    library_id: UUID,
    data: UnlockRequest,
    response: Response,
    user: SessionUser = Depends(get_current_user),
    gate: LibraryAccessGate = Depends(get_access_gate),
) -> SessionResponse:
    """Check the library password; the returned session carries the unlock."""
    return issue_session(response, gate.unlock(str(library_id), data.password, user))


@router.post("/{library_id}/lock", response_model=SessionResponse)
async def lock_library(
    library_id: UUID,
    response: Response,
    user: SessionUser = Depends(get_current_user),
    gate: LibraryAccessGate = Depends(get_access_gate),
) -> SessionResponse:
    return issue_session(response, gate.lock(str(library_id), user))


@router.post("/{library_id}/mark-accessible", response_model=SessionResponse)
async def mark_accessible(
    library_id: UUID,
    response: Response,
    user: SessionUser = Depends(get_current_user),
    gate: LibraryAccessGate = Depends(get_access_gate),
) -> SessionResponse:
    """Owner-only unlock without the password."""
    return issue_session(response, gate.mark_accessible(str(library_id), user))
