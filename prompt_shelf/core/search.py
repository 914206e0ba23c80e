"""Prompt search — quick text search, advanced filters, suggestions, saved searches.

Search is a filter builder over the rows of one library: rows are fetched
through the access gate and filtered, sorted and paged in Python. The sort
column comes from a closed enum, never from caller text.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any

import structlog
from pydantic import BaseModel, Field

from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.exceptions import (
    DuplicateName,
    NotFoundOrDenied,
    UniqueViolation,
    ValidationFailed,
)
from prompt_shelf.core.library_access import LibraryAccessGate, get_access_gate
from prompt_shelf.core.templates import (
    COMPLEXITY_COMPLEX,
    COMPLEXITY_MODERATE,
    COMPLEXITY_SIMPLE,
)
from prompt_shelf.core.validation import clean_name
from prompt_shelf.db.client import SupabaseClient, get_supabase_client
from prompt_shelf.db.models import SavedSearchRow

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


class SortKey(str, Enum):
    """Columns a search may be ordered by."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    POSITIVE_PROMPT = "positive_prompt"
    WILDCARD_COUNT = "wildcard_count"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Complexity(str, Enum):
    SIMPLE = COMPLEXITY_SIMPLE
    MODERATE = COMPLEXITY_MODERATE
    COMPLEX = COMPLEXITY_COMPLEX


class SearchFilters(BaseModel):
    """Advanced search criteria. Every field is optional; all given ones must hold."""

    query: str | None = None

    favorites_only: bool = False
    templates_only: bool = False
    has_negative_prompt: bool = False
    has_notes: bool = False

    created_after: datetime | None = None
    created_before: datetime | None = None
    modified_after: datetime | None = None
    modified_before: datetime | None = None

    models: list[str] = Field(default_factory=list)
    samplers: list[str] = Field(default_factory=list)
    steps_min: int | None = None
    steps_max: int | None = None
    cfg_min: float | None = None
    cfg_max: float | None = None

    wildcard_count_min: int | None = None
    wildcard_count_max: int | None = None
    template_complexity: list[Complexity] = Field(default_factory=list)

    sort_by: SortKey = SortKey.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


def _as_utc(value: datetime | str) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _in_range(value: Any, low: Any, high: Any) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _contains(text: str | None, needle: str) -> bool:
    return bool(text) and needle in text.lower()


def matches_query(prompt: dict[str, Any], query: str) -> bool:
    """Case-insensitive substring match over the text fields and the group name."""
    needle = query.lower()
    return (
        _contains(prompt.get("positive_prompt"), needle)
        or _contains(prompt.get("negative_prompt"), needle)
        or _contains(prompt.get("notes"), needle)
        or _contains((prompt.get("group") or {}).get("name"), needle)
    )


def matches_filters(prompt: dict[str, Any], filters: SearchFilters) -> bool:
    if filters.query and not matches_query(prompt, filters.query):
        return False
    if filters.favorites_only and not prompt.get("is_favorite"):
        return False
    if filters.templates_only and not prompt.get("has_template"):
        return False
    if filters.has_negative_prompt and not prompt.get("negative_prompt"):
        return False
    if filters.has_notes and not prompt.get("notes"):
        return False

    if filters.created_after or filters.created_before:
        created = _as_utc(prompt["created_at"])
        if filters.created_after and created < _as_utc(filters.created_after):
            return False
        if filters.created_before and created > _as_utc(filters.created_before):
            return False
    if filters.modified_after or filters.modified_before:
        modified = _as_utc(prompt["updated_at"])
        if filters.modified_after and modified < _as_utc(filters.modified_after):
            return False
        if filters.modified_before and modified > _as_utc(filters.modified_before):
            return False

    if filters.models and prompt.get("model") not in filters.models:
        return False
    if filters.samplers and prompt.get("sampler") not in filters.samplers:
        return False
    if not _in_range(prompt.get("steps", 0), filters.steps_min, filters.steps_max):
        return False
    if not _in_range(prompt.get("cfg_scale", 0), filters.cfg_min, filters.cfg_max):
        return False
    if not _in_range(
        prompt.get("wildcard_count", 0), filters.wildcard_count_min, filters.wildcard_count_max
    ):
        return False

    if filters.template_complexity:
        complexity = (prompt.get("template_metadata") or {}).get("complexity")
        if complexity not in {c.value for c in filters.template_complexity}:
            return False

    return True


def _sort_value(prompt: dict[str, Any], key: SortKey) -> Any:
    if key in (SortKey.CREATED_AT, SortKey.UPDATED_AT):
        return _as_utc(prompt[key.value])
    if key is SortKey.WILDCARD_COUNT:
        return prompt.get("wildcard_count") or 0
    return prompt.get("positive_prompt") or ""


def sort_prompts(
    prompts: list[dict[str, Any]], key: SortKey, order: SortOrder
) -> list[dict[str, Any]]:
    return sorted(
        prompts,
        key=lambda p: _sort_value(p, key),
        reverse=order is SortOrder.DESC,
    )


def highlight(text: str | None, query: str) -> str | None:
    """Wrap every case-insensitive occurrence of ``query`` in ``<mark>`` tags."""
    if not text:
        return None
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    return pattern.sub(lambda m: f"<mark>{m.group(0)}</mark>", text)


def build_highlights(prompt: dict[str, Any], query: str) -> dict[str, str] | None:
    highlights = {}
    for field_name in ("positive_prompt", "negative_prompt", "notes"):
        if _contains(prompt.get(field_name), query.lower()):
            highlights[field_name] = highlight(prompt[field_name], query)
    return highlights or None


class PromptSearch:
    """Searches the prompts of one library."""

    def __init__(self, db: SupabaseClient, gate: LibraryAccessGate) -> None:
        self.db = db
        self.gate = gate

    def _library_prompts(self, library_id: str, actor: SessionUser) -> list[dict[str, Any]]:
        self.gate.authorize(library_id, actor)
        groups = self.db.select("groups", filters={"library_id": str(library_id)})
        by_id = {str(g["id"]): g for g in groups}
        prompts = self.db.select_in("prompts", "group_id", list(by_id))
        return [
            {
                **p,
                "group": {
                    "id": str(p["group_id"]),
                    "name": by_id[str(p["group_id"])]["name"],
                    "library_id": str(library_id),
                },
            }
            for p in prompts
        ]

    def quick_search(
        self,
        library_id: str,
        actor: SessionUser,
        query: str,
        favorites_only: bool = False,
    ) -> dict[str, Any]:
        """Text search; favorites first, then newest first."""
        query = (query or "").strip()
        if not query:
            raise ValidationFailed("Search query is required")

        prompts = [
            p
            for p in self._library_prompts(library_id, actor)
            if matches_query(p, query) and (not favorites_only or p.get("is_favorite"))
        ]
        prompts = sort_prompts(prompts, SortKey.CREATED_AT, SortOrder.DESC)
        prompts.sort(key=lambda p: not p.get("is_favorite"))

        return {"prompts": prompts, "query": query, "count": len(prompts)}

    def advanced_search(
        self,
        library_id: str,
        actor: SessionUser,
        filters: SearchFilters,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Filter, sort and page a library's prompts."""
        page = max(1, page)
        page_size = min(max(1, page_size), MAX_PAGE_SIZE)

        matched = [
            p for p in self._library_prompts(library_id, actor) if matches_filters(p, filters)
        ]
        matched = sort_prompts(matched, filters.sort_by, filters.sort_order)

        total = len(matched)
        start = (page - 1) * page_size
        results = []
        for prompt in matched[start : start + page_size]:
            result: dict[str, Any] = {"prompt": prompt}
            if filters.query:
                result["highlights"] = build_highlights(prompt, filters.query)
            results.append(result)

        logger.debug(
            "search.advanced",
            library_id=str(library_id),
            total=total,
            sort_by=filters.sort_by.value,
        )
        return {
            "results": results,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size),
        }

    def suggestions(self, library_id: str, actor: SessionUser) -> dict[str, list[str]]:
        """Distinct models and samplers used in a library."""
        prompts = self._library_prompts(library_id, actor)
        return {
            "models": sorted({p["model"] for p in prompts if p.get("model")}),
            "samplers": sorted({p["sampler"] for p in prompts if p.get("sampler")}),
        }


class SavedSearchStore:
    """Named filter sets per user, optionally scoped to a library."""

    def __init__(self, db: SupabaseClient, gate: LibraryAccessGate) -> None:
        self.db = db
        self.gate = gate

    @staticmethod
    def _view(row: dict[str, Any]) -> dict[str, Any]:
        return SavedSearchRow.model_validate(row).model_dump(mode="json")

    def _find(self, search_id: str, actor: SessionUser) -> dict[str, Any]:
        rows = self.db.select(
            "saved_searches", filters={"id": str(search_id), "user_id": actor.id}, limit=1
        )
        if not rows:
            raise NotFoundOrDenied("Saved search not found")
        return rows[0]

    def _name_taken(
        self, actor: SessionUser, library_id: str | None, name: str, exclude_id: str | None = None
    ) -> bool:
        rows = self.db.select("saved_searches", filters={"user_id": actor.id, "name": name})
        return any(
            str(r.get("library_id") or "") == str(library_id or "")
            and str(r["id"]) != str(exclude_id)
            for r in rows
        )

    def list_saved(self, actor: SessionUser, library_id: str | None = None) -> list[dict[str, Any]]:
        """Most recently updated first."""
        filters: dict[str, Any] = {"user_id": actor.id}
        if library_id:
            filters["library_id"] = str(library_id)
        rows = self.db.select(
            "saved_searches", filters=filters, order_by="updated_at", ascending=False
        )
        return [self._view(r) for r in rows]

    def get(self, search_id: str, actor: SessionUser) -> dict[str, Any]:
        return self._view(self._find(search_id, actor))

    def create(
        self,
        actor: SessionUser,
        name: str,
        filters: SearchFilters,
        library_id: str | None = None,
    ) -> dict[str, Any]:
        name = clean_name(name, "Search name")
        if library_id:
            self.gate.resolver.require(library_id, actor.id)
        if self._name_taken(actor, library_id, name):
            raise DuplicateName("A saved search with this name already exists")

        try:
            row = self.db.insert(
                "saved_searches",
                {
                    "user_id": actor.id,
                    "library_id": str(library_id) if library_id else None,
                    "name": name,
                    "filters": filters.model_dump(mode="json", exclude_none=True),
                },
            )
        except UniqueViolation as e:
            raise DuplicateName("A saved search with this name already exists") from e

        logger.info("saved_search.created", search_id=str(row["id"]))
        return self._view(row)

    def update(
        self,
        search_id: str,
        actor: SessionUser,
        name: str | None = None,
        filters: SearchFilters | None = None,
    ) -> dict[str, Any]:
        existing = self._find(search_id, actor)

        data: dict[str, Any] = {}
        if name is not None:
            name = clean_name(name, "Search name")
            if self._name_taken(actor, existing.get("library_id"), name, exclude_id=existing["id"]):
                raise DuplicateName("A saved search with this name already exists")
            data["name"] = name
        if filters is not None:
            data["filters"] = filters.model_dump(mode="json", exclude_none=True)
        if not data:
            return self._view(existing)

        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            row = self.db.update("saved_searches", existing["id"], data)
        except UniqueViolation as e:
            raise DuplicateName("A saved search with this name already exists") from e
        return self._view(row)

    def delete(self, search_id: str, actor: SessionUser) -> None:
        existing = self._find(search_id, actor)
        self.db.delete("saved_searches", existing["id"])
        logger.info("saved_search.deleted", search_id=str(search_id))


@lru_cache
def get_prompt_search() -> PromptSearch:
    """Get cached search instance."""
    return PromptSearch(get_supabase_client(), get_access_gate())


@lru_cache
def get_saved_searches() -> SavedSearchStore:
    """Get cached saved-search store."""
    return SavedSearchStore(get_supabase_client(), get_access_gate())
