"""Group endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from prompt_shelf.api.deps import get_current_user
from prompt_shelf.api.models import GroupCreate, GroupResponse, GroupUpdate
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.registry import LibraryRegistry, get_registry

router = APIRouter()


@router.get("", response_model=list[GroupResponse])
async def list_groups(
    library_id: UUID,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> list[GroupResponse]:
    """Groups of a library in sort order."""
    return [GroupResponse(**g) for g in registry.list_groups(str(library_id), user)]


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    data: GroupCreate,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> GroupResponse:
    group = registry.create_group(str(data.library_id), user, data.name, data.description)
    return GroupResponse(**group)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: UUID,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> GroupResponse:
    return GroupResponse(**registry.get_group(str(group_id), user))


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: UUID,
    data: GroupUpdate,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> GroupResponse:
    group = registry.update_group(
        str(group_id), user, data.name, data.description, data.sort_order
    )
    return GroupResponse(**group)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: UUID,
    user: SessionUser = Depends(get_current_user),
    registry: LibraryRegistry = Depends(get_registry),
) -> None:
    """Delete a group and every prompt in it."""
    registry.delete_group(str(group_id), user)
