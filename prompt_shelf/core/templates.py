"""Template Analyzer — detects wildcard/placeholder syntax in prompt text.

Five kinds of syntax are recognised, each scanned independently over the
whole text. Matches of different kinds may overlap (a ``$var`` inside a
``{...}`` span counts twice); no cross-kind resolution is attempted.

Brace, bracket and paren patterns exclude both their opening and closing
delimiters, so a span stops at the next candidate and bracket soup degrades
to "no match" in linear time. A LoRA body runs to the first ``>`` and may
contain ``<``; an unclosed run of ``<lora:`` is quadratic, so callers keep
input within ``MAX_POSITIVE_PROMPT_LENGTH``.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

COMPLEXITY_NONE = "none"
COMPLEXITY_SIMPLE = "simple"
COMPLEXITY_MODERATE = "moderate"
COMPLEXITY_COMPLEX = "complex"

COMPLEXITY_LABELS = {
    COMPLEXITY_NONE: "None",
    COMPLEXITY_SIMPLE: "Simple",
    COMPLEXITY_MODERATE: "Moderate",
    COMPLEXITY_COMPLEX: "Complex",
}


@dataclass(frozen=True)
class WildcardPattern:
    """A kind of wildcard syntax and how to find it."""

    type: str
    regex: re.Pattern[str]
    label: str
    description: str


# Discovery order matters: ties on position keep this order, and categories
# are reported in first-seen order across it.
WILDCARD_PATTERNS: tuple[WildcardPattern, ...] = (
    WildcardPattern(
        "curlyBraces",
        re.compile(r"\{[^{}]+\}"),
        "Variables",
        "Curly brace variables like {character} or {style}",
    ),
    WildcardPattern(
        "squareBrackets",
        # the run before the first pipe excludes '|' so the split point is fixed
        re.compile(r"\[[^\[\]|]*\|[^\[\]]*\]"),
        "Options",
        "Square bracket options like [red|blue|green]",
    ),
    WildcardPattern(
        "doubleParens",
        re.compile(r"\(\([^()]+\)\)"),
        "Emphasis",
        "Double parentheses for emphasis like ((masterpiece))",
    ),
    WildcardPattern(
        "loraReferences",
        re.compile(r"<lora:[^>]+>"),
        "LoRA",
        "LoRA model references like <lora:model_name:0.8>",
    ),
    WildcardPattern(
        "dollarVariables",
        re.compile(r"\$[a-zA-Z_][a-zA-Z0-9_]*"),
        "Variables",
        "Dollar sign variables like $character or $background",
    ),
)

EXAMPLE_WILDCARDS = {
    "curlyBraces": "A beautiful {character} in {style} art style",
    "squareBrackets": "A [red|blue|green] car on the [street|highway]",
    "doubleParens": "A ((masterpiece)) photo with ((high quality)) details",
    "loraReferences": "Beautiful woman <lora:realistic_vision:0.8> in portrait style",
    "dollarVariables": "A $character_type sitting in $location with $mood lighting",
    "mixed": (
        "A {character} with [red|blue] hair, ((masterpiece)) quality, "
        "<lora:style_model:0.7> and $background_type"
    ),
}


@dataclass(frozen=True)
class WildcardMatch:
    """A single wildcard occurrence. ``position`` is a code-point offset."""

    type: str
    text: str
    position: int
    length: int


@dataclass(frozen=True)
class TemplateAnalysis:
    """Result of analysing one block of prompt text."""

    has_template: bool
    wildcard_count: int
    wildcards: list[WildcardMatch] = field(default_factory=list)
    complexity: str = COMPLEXITY_NONE
    categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def complexity_for(count: int) -> str:
    """Bucket a wildcard count: 0 none, 1-2 simple, 3-5 moderate, 6+ complex."""
    if count <= 0:
        return COMPLEXITY_NONE
    if count <= 2:
        return COMPLEXITY_SIMPLE
    if count <= 5:
        return COMPLEXITY_MODERATE
    return COMPLEXITY_COMPLEX


def complexity_label(complexity: str) -> str:
    return COMPLEXITY_LABELS.get(complexity, "None")


class TemplateAnalyzer:
    """Scans prompt text for wildcard syntax."""

    def __init__(self, patterns: tuple[WildcardPattern, ...] = WILDCARD_PATTERNS) -> None:
        self.patterns = patterns

    def analyze(self, text: str | None) -> TemplateAnalysis:
        """Analyse ``text``. Empty or missing text yields an empty analysis."""
        if not text or not isinstance(text, str):
            return TemplateAnalysis(has_template=False, wildcard_count=0)

        wildcards: list[WildcardMatch] = []
        categories: dict[str, None] = {}

        for pattern in self.patterns:
            for match in pattern.regex.finditer(text):
                wildcards.append(
                    WildcardMatch(
                        type=pattern.type,
                        text=match.group(),
                        position=match.start(),
                        length=len(match.group()),
                    )
                )
                categories.setdefault(pattern.label, None)

        # list.sort is stable: equal positions keep per-kind discovery order
        wildcards.sort(key=lambda w: w.position)
        count = len(wildcards)

        return TemplateAnalysis(
            has_template=count > 0,
            wildcard_count=count,
            wildcards=wildcards,
            complexity=complexity_for(count),
            categories=list(categories),
        )


def analyze_template(text: str | None) -> TemplateAnalysis:
    """Analyse ``text`` with the default pattern set."""
    return TemplateAnalyzer().analyze(text)


def build_template_metadata(analysis: TemplateAnalysis) -> dict[str, Any] | None:
    """Serializable summary stored on the prompt row, or None without a template.

    ``length`` is dropped from the stored shape; it is ``len(text)``.
    """
    if not analysis.has_template:
        return None

    return {
        "wildcards": [
            {"type": w.type, "text": w.text, "position": w.position} for w in analysis.wildcards
        ],
        "complexity": analysis.complexity,
        "categories": list(analysis.categories),
        "analyzedAt": datetime.now(timezone.utc).isoformat(),
    }


def derived_template_fields(text: str | None) -> dict[str, Any]:
    """The three prompt columns derived from ``positive_prompt``, ready to write."""
    analysis = analyze_template(text)
    return {
        "has_template": analysis.has_template,
        "wildcard_count": analysis.wildcard_count,
        "template_metadata": build_template_metadata(analysis),
    }
