"""Advanced search, suggestions and saved searches."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from prompt_shelf.api.deps import get_current_user
from prompt_shelf.api.models import (
    AdvancedSearchRequest,
    AdvancedSearchResponse,
    SavedSearchCreate,
    SavedSearchResponse,
    SavedSearchUpdate,
    SuggestionsResponse,
)
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.search import (
    PromptSearch,
    SavedSearchStore,
    get_prompt_search,
    get_saved_searches,
)

router = APIRouter()


@router.post("/advanced", response_model=AdvancedSearchResponse)
async def advanced_search(
    data: AdvancedSearchRequest,
    user: SessionUser = Depends(get_current_user),
    search: PromptSearch = Depends(get_prompt_search),
) -> AdvancedSearchResponse:
    """Filter, sort and page a library's prompts."""
    result = search.advanced_search(
        str(data.library_id), user, data.filters, page=data.page, page_size=data.page_size
    )
    return AdvancedSearchResponse(**result)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    library_id: UUID,
    user: SessionUser = Depends(get_current_user),
    search: PromptSearch = Depends(get_prompt_search),
) -> SuggestionsResponse:
    """Models and samplers in use, for filter dropdowns."""
    return SuggestionsResponse(**search.suggestions(str(library_id), user))


@router.get("/saved", response_model=list[SavedSearchResponse])
async def list_saved(
    library_id: UUID | None = None,
    user: SessionUser = Depends(get_current_user),
    store: SavedSearchStore = Depends(get_saved_searches),
) -> list[SavedSearchResponse]:
    rows = store.list_saved(user, str(library_id) if library_id else None)
    return [SavedSearchResponse(**r) for r in rows]


@router.post("/saved", response_model=SavedSearchResponse, status_code=201)
async def create_saved(
    data: SavedSearchCreate,
    user: SessionUser = Depends(get_current_user),
    store: SavedSearchStore = Depends(get_saved_searches),
) -> SavedSearchResponse:
    row = store.create(
        user,
        data.name,
        data.filters,
        library_id=str(data.library_id) if data.library_id else None,
    )
    return SavedSearchResponse(**row)


@router.get("/saved/{search_id}", response_model=SavedSearchResponse)
async def get_saved(
    search_id: UUID,
    user: SessionUser = Depends(get_current_user),
    store: SavedSearchStore = Depends(get_saved_searches),
) -> SavedSearchResponse:
    return SavedSearchResponse(**store.get(str(search_id), user))


@router.put("/saved/{search_id}", response_model=SavedSearchResponse)
async def update_saved(
    search_id: UUID,
    data: SavedSearchUpdate,
    user: SessionUser = Depends(get_current_user),
    store: SavedSearchStore = Depends(get_saved_searches),
) -> SavedSearchResponse:
    row = store.update(str(search_id), user, name=data.name, filters=data.filters)
    return SavedSearchResponse(**row)


@router.delete("/saved/{search_id}", status_code=204)
async def delete_saved(
    search_id: UUID,
    user: SessionUser = Depends(get_current_user),
    store: SavedSearchStore = Depends(get_saved_searches),
) -> None:
    store.delete(str(search_id), user)
