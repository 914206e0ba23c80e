"""Tests for the template analyzer."""

from __future__ import annotations

import pytest

from prompt_shelf.core.templates import (
    COMPLEXITY_COMPLEX,
    COMPLEXITY_MODERATE,
    COMPLEXITY_NONE,
    COMPLEXITY_SIMPLE,
    EXAMPLE_WILDCARDS,
    TemplateAnalyzer,
    analyze_template,
    build_template_metadata,
    complexity_for,
    complexity_label,
    derived_template_fields,
)


class TestEmptyInput:
    @pytest.mark.parametrize("text", ["", None])
    def test_empty_or_missing_text(self, text):
        analysis = analyze_template(text)
        assert analysis.has_template is False
        assert analysis.wildcard_count == 0
        assert analysis.wildcards == []
        assert analysis.complexity == COMPLEXITY_NONE
        assert analysis.categories == []

    def test_plain_text_has_no_template(self):
        analysis = analyze_template("a portrait of an old sailor, oil painting")
        assert analysis.has_template is False
        assert analysis.complexity == COMPLEXITY_NONE


class TestDetection:
    def test_curly_and_square(self):
        text = "A {character} in [red|blue] style"
        analysis = analyze_template(text)

        assert analysis.wildcard_count == 2
        assert [w.type for w in analysis.wildcards] == ["curlyBraces", "squareBrackets"]
        assert analysis.complexity == COMPLEXITY_SIMPLE
        assert analysis.categories == ["Variables", "Options"]
        for w in analysis.wildcards:
            assert w.position == text.index(w.text)
            assert w.length == len(w.text)
            assert text[w.position : w.position + w.length] == w.text

    def test_bracket_without_pipe_is_not_a_wildcard(self):
        analysis = analyze_template("[red]")
        assert analysis.wildcard_count == 0
        assert not any(w.type == "squareBrackets" for w in analysis.wildcards)

    def test_each_kind(self):
        cases = {
            "{style}": "curlyBraces",
            "[a|b|c]": "squareBrackets",
            "((masterpiece))": "doubleParens",
            "<lora:detail_tweaker:0.6>": "loraReferences",
            "$background_type": "dollarVariables",
        }
        for text, kind in cases.items():
            analysis = analyze_template(text)
            assert analysis.wildcard_count == 1, text
            assert analysis.wildcards[0].type == kind
            assert analysis.wildcards[0].text == text

    def test_single_parens_and_bare_dollar_ignored(self):
        analysis = analyze_template("(soft light) costs $5 or $ alone")
        assert analysis.wildcard_count == 0

    def test_mixed_example(self):
        analysis = analyze_template(EXAMPLE_WILDCARDS["mixed"])
        assert analysis.wildcard_count == 5
        assert analysis.complexity == COMPLEXITY_MODERATE
        assert analysis.categories == ["Variables", "Options", "Emphasis", "LoRA"]

    def test_sorted_by_position(self):
        text = "$first then {second} then ((third))"
        analysis = analyze_template(text)
        positions = [w.position for w in analysis.wildcards]
        assert positions == sorted(positions)
        assert [w.type for w in analysis.wildcards] == [
            "dollarVariables",
            "curlyBraces",
            "doubleParens",
        ]

    def test_categories_first_seen_in_discovery_order(self):
        # The dollar variable comes first in the text, but curly braces are
        # scanned first, so "Variables" is seen before "Emphasis".
        analysis = analyze_template("$x ((y)) {z}")
        assert analysis.categories == ["Variables", "Emphasis"]

    def test_overlapping_kinds_both_counted(self):
        analysis = analyze_template("{$name}")
        assert analysis.wildcard_count == 2
        assert {w.type for w in analysis.wildcards} == {"curlyBraces", "dollarVariables"}

    def test_positions_are_code_point_offsets(self):
        text = "🎨 {subject}"
        analysis = analyze_template(text)
        assert analysis.wildcards[0].position == 2

    def test_square_bracket_pipe_must_precede_close(self):
        analysis = analyze_template("[left] | [right]")
        assert analysis.wildcard_count == 0

    @pytest.mark.parametrize("text", ["<lora:a<b>", "<lora:x <lora:y>"])
    def test_lora_body_runs_to_first_close(self, text):
        analysis = analyze_template(text)
        assert [(w.text, w.position) for w in analysis.wildcards] == [(text, 0)]
        assert analysis.wildcards[0].type == "loraReferences"

    def test_unclosed_lora_is_not_a_wildcard(self):
        assert analyze_template("<lora:model:0.8 and more").wildcard_count == 0


class TestComplexity:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("{a}", COMPLEXITY_SIMPLE),
            ("{a} {b}", COMPLEXITY_SIMPLE),
            ("{a} {b} {c}", COMPLEXITY_MODERATE),
            ("{a} {b} {c} {d} {e}", COMPLEXITY_MODERATE),
            ("{a} {b} {c} {d} {e} {f}", COMPLEXITY_COMPLEX),
        ],
    )
    def test_boundaries(self, text, expected):
        assert analyze_template(text).complexity == expected

    def test_complexity_for_counts(self):
        assert complexity_for(0) == COMPLEXITY_NONE
        assert complexity_for(2) == COMPLEXITY_SIMPLE
        assert complexity_for(3) == COMPLEXITY_MODERATE
        assert complexity_for(6) == COMPLEXITY_COMPLEX

    def test_labels(self):
        assert complexity_label(COMPLEXITY_MODERATE) == "Moderate"
        assert complexity_label("unknown") == "None"


class TestMetadata:
    def test_none_without_template(self):
        assert build_template_metadata(analyze_template("no wildcards here")) is None

    def test_wildcards_drop_length(self):
        analysis = analyze_template("A {character} in [red|blue] style with $mood")
        metadata = build_template_metadata(analysis)

        assert metadata is not None
        assert metadata["complexity"] == analysis.complexity
        assert metadata["categories"] == analysis.categories
        assert "analyzedAt" in metadata
        assert [set(w) for w in metadata["wildcards"]] == [{"type", "text", "position"}] * 3
        assert [(w["type"], w["text"], w["position"]) for w in metadata["wildcards"]] == [
            (w.type, w.text, w.position) for w in analysis.wildcards
        ]

    def test_idempotent(self):
        text = EXAMPLE_WILDCARDS["mixed"]
        first, second = analyze_template(text), analyze_template(text)
        assert first == second
        assert first.to_dict() == second.to_dict()

        m1, m2 = build_template_metadata(first), build_template_metadata(second)
        m1.pop("analyzedAt")
        m2.pop("analyzedAt")
        assert m1 == m2

    def test_derived_fields(self):
        fields = derived_template_fields("a [cat|dog] on a sofa")
        assert fields["has_template"] is True
        assert fields["wildcard_count"] == 1
        assert fields["template_metadata"]["complexity"] == COMPLEXITY_SIMPLE

        assert derived_template_fields("plain") == {
            "has_template": False,
            "wildcard_count": 0,
            "template_metadata": None,
        }


class TestPathologicalInput:
    """Crafted input must fail to match quickly rather than backtrack."""

    @pytest.mark.parametrize(
        "text",
        [
            "[" * 20000 + "|",
            "[" + "a" * 20000 + "|" + "[" * 20000,
            "{" * 20000,
            "((" * 10000 + ")",
            "<lora:" * 834,
            "$" * 20000,
        ],
    )
    def test_bracket_soup(self, text):
        analysis = TemplateAnalyzer().analyze(text)
        assert analysis.wildcard_count == 0
