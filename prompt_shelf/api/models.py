"""Pydantic request/response models for the API."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from prompt_shelf.core.permissions import Permission
from prompt_shelf.core.search import SearchFilters
from prompt_shelf.core.validation import (
    DEFAULT_CFG_SCALE,
    DEFAULT_DIMENSION,
    DEFAULT_STEPS,
    MAX_POSITIVE_PROMPT_LENGTH,
)


class ErrorResponse(BaseModel):
    detail: str
    code: str


# --- Auth ---


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str | None = None


class SessionResponse(BaseModel):
    """A freshly issued session token (also set as the ``session`` cookie)."""

    token: str
    user: UserResponse
    unlocked: list[str] = Field(default_factory=list)


# --- Libraries ---


class LibraryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    color: str | None = None
    is_private: bool = False
    password: str | None = None
    password_hint: str | None = None


class LibraryUpdate(LibraryCreate):
    """Full update. Omitting ``password`` on a private library keeps the old one."""


class OwnerSummary(BaseModel):
    id: UUID
    name: str | None = None
    email: str


class LibraryResponse(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    color: str
    is_private: bool
    password_hint: str | None = None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime
    is_locked: bool = False


class SharedLibraryResponse(LibraryResponse):
    permission: Permission
    owner: OwnerSummary | None = None


class LibraryListResponse(BaseModel):
    owned: list[LibraryResponse]
    shared: list[SharedLibraryResponse]


class PermissionResponse(BaseModel):
    permission: Permission
    is_owner: bool
    can_read: bool
    can_write: bool
    can_admin: bool
    can_share: bool


class LibraryPermissionResponse(PermissionResponse):
    library_id: UUID
    is_locked: bool


class GroupResponse(BaseModel):
    id: UUID
    library_id: UUID
    name: str
    description: str | None = None
    sort_order: int
    prompt_count: int = 0
    created_at: datetime
    updated_at: datetime


class LibraryDetailResponse(LibraryResponse):
    permission: PermissionResponse
    groups: list[GroupResponse] = Field(default_factory=list)
    session: SessionResponse | None = None


class UnlockRequest(BaseModel):
    password: str


# --- Sharing ---


class InviteCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    permission: Permission = Permission.READ


class InviteCreatedResponse(BaseModel):
    token: str
    invite_url: str
    email: str
    permission: Permission


class PermissionUpdate(BaseModel):
    permission: Permission


class ShareResponse(BaseModel):
    user_id: UUID
    permission: Permission
    accepted_at: datetime
    created_at: datetime | None = None
    user: OwnerSummary | None = None
    inviter: OwnerSummary | None = None


class PendingInviteResponse(BaseModel):
    id: UUID
    email: str
    permission: Permission
    created_at: datetime | None = None
    expires_at: datetime
    inviter: OwnerSummary | None = None


class SharesResponse(BaseModel):
    shares: list[ShareResponse]
    pending_invites: list[PendingInviteResponse]


class InviteLibrarySummary(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    color: str | None = None


class InvitePreviewResponse(BaseModel):
    email: str
    permission: Permission
    library: InviteLibrarySummary
    inviter: OwnerSummary | None = None
    created_at: datetime | None = None
    expires_at: datetime


class InviteAccept(BaseModel):
    token: str = Field(..., min_length=1)


# --- Groups ---


class GroupCreate(BaseModel):
    library_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class GroupUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    sort_order: int | None = None


# --- Prompts ---


class PromptCreate(BaseModel):
    group_id: UUID
    positive_prompt: str
    negative_prompt: str | None = None
    notes: str | None = None
    steps: int = DEFAULT_STEPS
    cfg_scale: float = DEFAULT_CFG_SCALE
    sampler: str | None = None
    model: str | None = None
    seed: int | None = None
    width: int = DEFAULT_DIMENSION
    height: int = DEFAULT_DIMENSION
    is_favorite: bool = False


class PromptUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""

    positive_prompt: str | None = None
    negative_prompt: str | None = None
    notes: str | None = None
    steps: int | None = None
    cfg_scale: float | None = None
    sampler: str | None = None
    model: str | None = None
    seed: int | None = None
    width: int | None = None
    height: int | None = None
    is_favorite: bool | None = None


class GroupSummary(BaseModel):
    id: UUID
    name: str
    library_id: UUID


class PromptResponse(BaseModel):
    id: UUID
    group_id: UUID
    positive_prompt: str
    negative_prompt: str | None = None
    notes: str | None = None
    steps: int
    cfg_scale: float
    sampler: str
    model: str
    seed: int | None = None
    width: int
    height: int
    is_favorite: bool
    has_template: bool
    wildcard_count: int
    template_metadata: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    group: GroupSummary | None = None


class QuickSearchResponse(BaseModel):
    prompts: list[PromptResponse]
    query: str
    count: int


class AnalyzeRequest(BaseModel):
    text: str = Field("", max_length=MAX_POSITIVE_PROMPT_LENGTH)


class WildcardResponse(BaseModel):
    type: str
    text: str
    position: int
    length: int


class AnalysisResponse(BaseModel):
    has_template: bool
    wildcard_count: int
    wildcards: list[WildcardResponse]
    complexity: str
    complexity_label: str
    categories: list[str]
    metadata: dict[str, Any] | None = None


# --- Search ---


class AdvancedSearchRequest(BaseModel):
    library_id: UUID
    filters: SearchFilters = Field(default_factory=SearchFilters)
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class SearchResultItem(BaseModel):
    prompt: PromptResponse
    highlights: dict[str, str] | None = None


class AdvancedSearchResponse(BaseModel):
    results: list[SearchResultItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class SuggestionsResponse(BaseModel):
    models: list[str]
    samplers: list[str]


class SavedSearchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    library_id: UUID | None = None
    filters: SearchFilters


class SavedSearchUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    filters: SearchFilters | None = None


class SavedSearchResponse(BaseModel):
    id: UUID
    user_id: UUID
    library_id: UUID | None = None
    name: str
    filters: dict[str, Any]
    created_at: datetime
    updated_at: datetime


# --- Audit ---


class AuditEntryResponse(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str | None = None
    actor: str
    details: dict[str, Any]
    created_at: datetime
