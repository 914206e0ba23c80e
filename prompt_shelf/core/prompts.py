"""Prompt Registry — prompt CRUD with template analysis on every text write.

``has_template``, ``wildcard_count`` and ``template_metadata`` are derived
from ``positive_prompt`` and are written in the same update as the text.
Updates that leave the text alone never touch them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import structlog

from prompt_shelf.core.auth import SessionUser
from prompt_shelf.core.exceptions import NotFoundOrDenied, ValidationFailed
from prompt_shelf.core.permissions import Permission
from prompt_shelf.core.registry import LibraryRegistry, get_registry
from prompt_shelf.core.templates import derived_template_fields
from prompt_shelf.core.validation import (
    DEFAULT_CFG_SCALE,
    DEFAULT_DIMENSION,
    DEFAULT_MODEL,
    DEFAULT_SAMPLER,
    DEFAULT_STEPS,
    MAX_NEGATIVE_PROMPT_LENGTH,
    MAX_NOTES_LENGTH,
    check_cfg_scale,
    check_dimensions,
    check_steps,
    clean_optional_text,
    clean_positive_prompt,
)
from prompt_shelf.db.client import SupabaseClient, get_supabase_client

logger = structlog.get_logger()

UPDATABLE_FIELDS = frozenset(
    {
        "positive_prompt",
        "negative_prompt",
        "notes",
        "steps",
        "cfg_scale",
        "sampler",
        "model",
        "seed",
        "width",
        "height",
        "is_favorite",
    }
)


def _group_summary(group: dict[str, Any]) -> dict[str, Any]:
    return {"id": str(group["id"]), "name": group["name"], "library_id": str(group["library_id"])}


class PromptRegistry:
    """Manages prompts inside groups, through the library access gate."""

    def __init__(self, db: SupabaseClient, libraries: LibraryRegistry) -> None:
        self.db = db
        self.libraries = libraries

    def _find(self, prompt_id: str) -> dict[str, Any] | None:
        rows = self.db.select("prompts", filters={"id": str(prompt_id)}, limit=1)
        return rows[0] if rows else None

    def _authorize_prompt(
        self, prompt_id: str, actor: SessionUser, minimum: Permission
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        prompt = self._find(prompt_id)
        if prompt is None:
            raise NotFoundOrDenied("Prompt not found")
        try:
            group, _, _ = self.libraries.authorize_group(prompt["group_id"], actor, minimum)
        except NotFoundOrDenied as e:
            raise NotFoundOrDenied("Prompt not found") from e
        return prompt, group

    def list_prompts(
        self,
        actor: SessionUser,
        group_id: str | None = None,
        library_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Prompts of one group, or of every group in a library; newest first."""
        if group_id:
            group, _, _ = self.libraries.authorize_group(group_id, actor)
            groups = [group]
        elif library_id:
            self.libraries.gate.authorize(library_id, actor)
            groups = self.db.select("groups", filters={"library_id": str(library_id)})
        else:
            raise ValidationFailed("Group ID or Library ID is required")

        by_id = {str(g["id"]): g for g in groups}
        prompts = self.db.select_in(
            "prompts", "group_id", list(by_id), order_by="created_at", ascending=False
        )
        return [{**p, "group": _group_summary(by_id[str(p["group_id"])])} for p in prompts]

    def get_prompt(self, prompt_id: str, actor: SessionUser) -> dict[str, Any]:
        prompt, group = self._authorize_prompt(prompt_id, actor, Permission.READ)
        return {**prompt, "group": _group_summary(group)}

    def create_prompt(
        self,
        actor: SessionUser,
        group_id: str,
        positive_prompt: str,
        negative_prompt: str | None = None,
        notes: str | None = None,
        steps: int = DEFAULT_STEPS,
        cfg_scale: float = DEFAULT_CFG_SCALE,
        sampler: str | None = None,
        model: str | None = None,
        seed: int | None = None,
        width: int = DEFAULT_DIMENSION,
        height: int = DEFAULT_DIMENSION,
        is_favorite: bool = False,
    ) -> dict[str, Any]:
        """Validate, analyse and insert a prompt (write access required)."""
        text = clean_positive_prompt(positive_prompt)
        data: dict[str, Any] = {
            "positive_prompt": text,
            "negative_prompt": clean_optional_text(
                negative_prompt, MAX_NEGATIVE_PROMPT_LENGTH, "Negative prompt"
            ),
            "notes": clean_optional_text(notes, MAX_NOTES_LENGTH, "Notes"),
            "steps": check_steps(steps),
            "cfg_scale": check_cfg_scale(cfg_scale),
            "sampler": sampler or DEFAULT_SAMPLER,
            "model": model or DEFAULT_MODEL,
            "seed": seed,
            "is_favorite": bool(is_favorite),
        }
        data["width"], data["height"] = check_dimensions(width, height)

        group, _, _ = self.libraries.authorize_group(group_id, actor, Permission.WRITE)

        data["group_id"] = str(group["id"])
        data.update(derived_template_fields(text))

        prompt = self.db.insert("prompts", data)
        logger.info(
            "prompt.created",
            prompt_id=str(prompt["id"]),
            group_id=str(group["id"]),
            wildcards=data["wildcard_count"],
        )
        return {**prompt, "group": _group_summary(group)}

    def update_prompt(
        self, prompt_id: str, actor: SessionUser, changes: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply a partial update. Only the keys present in ``changes`` are written."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")

        existing, group = self._authorize_prompt(prompt_id, actor, Permission.WRITE)

        data: dict[str, Any] = {}
        if "positive_prompt" in changes:
            text = clean_positive_prompt(changes["positive_prompt"])
            data["positive_prompt"] = text
            data.update(derived_template_fields(text))
        if "negative_prompt" in changes:
            data["negative_prompt"] = clean_optional_text(
                changes["negative_prompt"], MAX_NEGATIVE_PROMPT_LENGTH, "Negative prompt"
            )
        if "notes" in changes:
            data["notes"] = clean_optional_text(changes["notes"], MAX_NOTES_LENGTH, "Notes")
        if "steps" in changes:
            data["steps"] = check_steps(changes["steps"])
        if "cfg_scale" in changes:
            data["cfg_scale"] = check_cfg_scale(changes["cfg_scale"])
        if "sampler" in changes:
            data["sampler"] = changes["sampler"] or DEFAULT_SAMPLER
        if "model" in changes:
            data["model"] = changes["model"] or DEFAULT_MODEL
        if "seed" in changes:
            data["seed"] = changes["seed"]
        if "width" in changes or "height" in changes:
            # A lone width or height is checked against the stored counterpart
            width = changes.get("width", existing["width"])
            height = changes.get("height", existing["height"])
            check_dimensions(width, height)
            if "width" in changes:
                data["width"] = width
            if "height" in changes:
                data["height"] = height
        if "is_favorite" in changes:
            data["is_favorite"] = bool(changes["is_favorite"])

        if not data:
            return {**existing, "group": _group_summary(group)}

        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        updated = self.db.update("prompts", existing["id"], data)
        logger.info("prompt.updated", prompt_id=str(prompt_id), fields=sorted(changes))
        return {**updated, "group": _group_summary(group)}

    def delete_prompt(self, prompt_id: str, actor: SessionUser) -> None:
        prompt, _ = self._authorize_prompt(prompt_id, actor, Permission.WRITE)
        self.db.delete("prompts", prompt["id"])
        logger.info("prompt.deleted", prompt_id=str(prompt_id))


@lru_cache
def get_prompt_registry() -> PromptRegistry:
    """Get cached prompt registry instance."""
    return PromptRegistry(get_supabase_client(), get_registry())
