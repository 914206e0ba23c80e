"""Prompt CRUD, quick search and template analysis endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from prompt_shelf.api.deps import get_current_user
from prompt_shelf.api.models import (
    AnalysisResponse,
    AnalyzeRequest,
    PromptCreate,
    PromptResponse,
    PromptUpdate,
    QuickSearchResponse,
)
from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.prompts import PromptRegistry, get_prompt_registry
from prompt_shelf.core.search import PromptSearch, get_prompt_search
from prompt_shelf.core.templates import (
    analyze_template,
    build_template_metadata,
    complexity_label,
)

router = APIRouter()


@router.get("", response_model=list[PromptResponse])
async def list_prompts(
    group_id: UUID | None = None,
    library_id: UUID | None = None,
    user: SessionUser = Depends(get_current_user),
    prompts: PromptRegistry = Depends(get_prompt_registry),
) -> list[PromptResponse]:
    """Prompts of a group, or of a whole library; newest first."""
    rows = prompts.list_prompts(
        user,
        group_id=str(group_id) if group_id else None,
        library_id=str(library_id) if library_id else None,
    )
    return [PromptResponse(**p) for p in rows]


@router.post("", response_model=PromptResponse, status_code=201)
async def create_prompt(
    data: PromptCreate,
    user: SessionUser = Depends(get_current_user),
    prompts: PromptRegistry = Depends(get_prompt_registry),
) -> PromptResponse:
    """Create a prompt; template fields are derived from the positive text."""
    fields = data.model_dump()
    group_id = str(fields.pop("group_id"))
    return PromptResponse(**prompts.create_prompt(user, group_id, **fields))


@router.get("/search", response_model=QuickSearchResponse)
async def quick_search(
    library_id: UUID,
    q: str,
    favorites: bool = False,
    user: SessionUser = Depends(get_current_user),
    search: PromptSearch = Depends(get_prompt_search),
) -> QuickSearchResponse:
    """Text search inside one library, favorites first."""
    return QuickSearchResponse(**search.quick_search(str(library_id), user, q, favorites))


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze(data: AnalyzeRequest) -> AnalysisResponse:
    """Analyse arbitrary text without storing anything."""
    analysis = analyze_template(data.text)
    return AnalysisResponse(
        **analysis.to_dict(),
        complexity_label=complexity_label(analysis.complexity),
        metadata=build_template_metadata(analysis),
    )


@router.get("/{prompt_id}", response_model=PromptResponse)
async def get_prompt(
    prompt_id: UUID,
    user: SessionUser = Depends(get_current_user),
    prompts: PromptRegistry = Depends(get_prompt_registry),
) -> PromptResponse:
    return PromptResponse(**prompts.get_prompt(str(prompt_id), user))


@router.put("/{prompt_id}", response_model=PromptResponse)
async def update_prompt(
    prompt_id: UUID,
    data: PromptUpdate,
    user: SessionUser = Depends(get_current_user),
    prompts: PromptRegistry = Depends(get_prompt_registry),
) -> PromptResponse:
    """Partial update. Fields absent from the body stay as they are."""
    changes = data.model_dump(exclude_unset=True)
    return PromptResponse(**prompts.update_prompt(str(prompt_id), user, changes))


@router.delete("/{prompt_id}", status_code=204)
async def delete_prompt(
    prompt_id: UUID,
    user: SessionUser = Depends(get_current_user),
    prompts: PromptRegistry = Depends(get_prompt_registry),
) -> None:
    prompts.delete_prompt(str(prompt_id), user)
