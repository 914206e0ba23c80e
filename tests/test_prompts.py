"""Tests for prompt CRUD and template analysis on write."""

from __future__ import annotations

import pytest

from prompt_shelf.core.exceptions import (
    InsufficientPermission,
    LibraryLocked,
    NotFoundOrDenied,
    ValidationFailed,
)


@pytest.fixture
def group(registry, library, owner):
    return registry.create_group(library["id"], owner, "Heads")


class TestCreate:
    def test_defaults_and_analysis(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "  A {character} in [red|blue]  ")

        assert prompt["positive_prompt"] == "A {character} in [red|blue]"
        assert prompt["steps"] == 20
        assert prompt["cfg_scale"] == 7.0
        assert prompt["sampler"] == "Euler a"
        assert prompt["model"] == "SD 1.5"
        assert (prompt["width"], prompt["height"]) == (512, 512)
        assert prompt["has_template"] is True
        assert prompt["wildcard_count"] == 2
        assert prompt["template_metadata"]["complexity"] == "simple"
        assert prompt["group"]["name"] == "Heads"

    def test_plain_text(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "a quiet harbour at dawn")
        assert prompt["has_template"] is False
        assert prompt["wildcard_count"] == 0
        assert prompt["template_metadata"] is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"positive_prompt": "   "},
            {"positive_prompt": "x" * 5001},
            {"positive_prompt": "ok", "negative_prompt": "x" * 2001},
            {"positive_prompt": "ok", "notes": "x" * 1001},
            {"positive_prompt": "ok", "steps": 0},
            {"positive_prompt": "ok", "steps": 101},
            {"positive_prompt": "ok", "cfg_scale": 0.5},
            {"positive_prompt": "ok", "cfg_scale": 21},
            {"positive_prompt": "ok", "width": 500},
            {"positive_prompt": "ok", "height": 1088},
        ],
    )
    def test_invalid(self, prompts, group, owner, kwargs):
        with pytest.raises(ValidationFailed):
            prompts.create_prompt(owner, group["id"], **kwargs)

    def test_dimension_bounds(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "ok", width=256, height=1024)
        assert (prompt["width"], prompt["height"]) == (256, 1024)

    def test_reader_cannot_create(self, prompts, group, library, owner, share_with):
        reader = share_with(library["id"], owner, "read")
        with pytest.raises(InsufficientPermission):
            prompts.create_prompt(reader, group["id"], "nope")

    def test_locked_library(self, registry, prompts, owner):
        vault = registry.create_library(owner, "Vault", is_private=True, password="hunter22")
        actor = registry.gate.mark_accessible(vault["id"], owner)
        group = registry.create_group(vault["id"], actor, "Inside")

        with pytest.raises(LibraryLocked):
            prompts.create_prompt(owner, group["id"], "blocked")
        assert prompts.create_prompt(actor, group["id"], "allowed")["positive_prompt"] == "allowed"


class TestUpdate:
    def test_text_change_reanalyzes(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "plain")
        updated = prompts.update_prompt(prompt["id"], owner, {"positive_prompt": "$a $b $c"})

        assert updated["has_template"] is True
        assert updated["wildcard_count"] == 3
        assert updated["template_metadata"]["complexity"] == "moderate"

    def test_other_fields_leave_analysis_alone(self, prompts, mock_db, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "{a} {b}")
        before = mock_db.select("prompts", filters={"id": prompt["id"]})[0]["template_metadata"]

        updated = prompts.update_prompt(prompt["id"], owner, {"is_favorite": True, "steps": 30})
        assert updated["is_favorite"] is True
        assert updated["steps"] == 30
        assert updated["template_metadata"] == before

    def test_lone_dimension_checked_against_stored(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "ok", width=768, height=512)
        assert prompts.update_prompt(prompt["id"], owner, {"height": 1024})["width"] == 768
        with pytest.raises(ValidationFailed):
            prompts.update_prompt(prompt["id"], owner, {"width": 1000})

    def test_unknown_field(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "ok")
        with pytest.raises(ValidationFailed, match="group_id"):
            prompts.update_prompt(prompt["id"], owner, {"group_id": "elsewhere"})

    def test_empty_update_is_a_noop(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "ok")
        assert prompts.update_prompt(prompt["id"], owner, {})["updated_at"] == prompt["updated_at"]

    def test_reader_cannot_update(self, prompts, group, library, owner, share_with):
        prompt = prompts.create_prompt(owner, group["id"], "ok")
        reader = share_with(library["id"], owner, "read")
        with pytest.raises(InsufficientPermission):
            prompts.update_prompt(prompt["id"], reader, {"notes": "mine now"})


class TestReadAndDelete:
    def test_list_by_group_and_library(self, registry, prompts, group, library, owner):
        other = registry.create_group(library["id"], owner, "Bodies")
        first = prompts.create_prompt(owner, group["id"], "first")
        second = prompts.create_prompt(owner, other["id"], "second")

        by_group = prompts.list_prompts(owner, group_id=group["id"])
        assert [p["id"] for p in by_group] == [first["id"]]

        by_library = prompts.list_prompts(owner, library_id=library["id"])
        assert [p["id"] for p in by_library] == [second["id"], first["id"]]
        assert by_library[0]["group"]["name"] == "Bodies"

    def test_list_needs_a_scope(self, prompts, owner):
        with pytest.raises(ValidationFailed):
            prompts.list_prompts(owner)

    def test_get_hidden_from_strangers(self, prompts, group, owner, make_user):
        prompt = prompts.create_prompt(owner, group["id"], "ok")
        with pytest.raises(NotFoundOrDenied, match="Prompt not found"):
            prompts.get_prompt(prompt["id"], make_user())

    def test_delete(self, prompts, group, owner):
        prompt = prompts.create_prompt(owner, group["id"], "bye")
        prompts.delete_prompt(prompt["id"], owner)
        with pytest.raises(NotFoundOrDenied):
            prompts.get_prompt(prompt["id"], owner)
