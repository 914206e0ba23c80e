"""Database models / type definitions.

These mirror the Supabase tables (see ``supabase/migrations``) for type
safety in Python code.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class UserRow(BaseModel):
    """Row from the users table."""

    id: UUID
    email: str
    password_hash: str
    name: str | None = None
    created_at: datetime


class LibraryRow(BaseModel):
    """Row from the libraries table."""

    id: UUID
    name: str
    description: str | None = None
    color: str
    is_private: bool
    password_hash: str | None = None
    password_hint: str | None = None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime


class LibraryShareRow(BaseModel):
    """Row from the library_shares table. ``accepted_at`` is always set."""

    id: UUID
    library_id: UUID
    user_id: UUID
    permission: str
    invited_by: UUID | None = None
    accepted_at: datetime
    created_at: datetime


class LibraryInviteRow(BaseModel):
    """Row from the library_invites table."""

    id: UUID
    library_id: UUID
    email: str
    permission: str
    invited_by: UUID
    token: str
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime


class GroupRow(BaseModel):
    """Row from the groups table."""

    id: UUID
    library_id: UUID
    name: str
    description: str | None = None
    sort_order: int
    created_at: datetime
    updated_at: datetime


class PromptRow(BaseModel):
    """Row from the prompts table."""

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


class SavedSearchRow(BaseModel):
    """Row from the saved_searches table."""

    id: UUID
    user_id: UUID
    library_id: UUID | None = None
    name: str
    filters: dict[str, Any]
    created_at: datetime
    updated_at: datetime
