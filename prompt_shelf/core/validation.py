"""Field rules shared by the registry services.

Each helper returns the cleaned value or raises ValidationFailed.
"""

from __future__ import annotations

import re

from prompt_shelf.core.exceptions import ValidationFailed

MAX_NAME_LENGTH = 100
MAX_POSITIVE_PROMPT_LENGTH = 5000
MAX_NEGATIVE_PROMPT_LENGTH = 2000
MAX_NOTES_LENGTH = 1000
MIN_STEPS, MAX_STEPS = 1, 100
MIN_CFG_SCALE, MAX_CFG_SCALE = 1.0, 20.0
VALID_DIMENSIONS = tuple(range(256, 1025, 64))

DEFAULT_COLOR = "#3b82f6"
DEFAULT_SAMPLER = "Euler a"
DEFAULT_MODEL = "SD 1.5"
DEFAULT_STEPS = 20
DEFAULT_CFG_SCALE = 7.0
DEFAULT_DIMENSION = 512

COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


def clean_name(value: str | None, what: str = "Name") -> str:
    name = (value or "").strip()
    if not name or len(name) > MAX_NAME_LENGTH:
        raise ValidationFailed(
            f"Valid {what.lower()} is required (max {MAX_NAME_LENGTH} characters)"
        )
    return name


def clean_optional_text(value: str | None, limit: int | None = None, what: str = "Text") -> str | None:
    """Trim; empty becomes None."""
    text = (value or "").strip()
    if limit is not None and len(text) > limit:
        raise ValidationFailed(f"{what} must be {limit} characters or less")
    return text or None


def clean_color(value: str | None) -> str:
    if not value:
        return DEFAULT_COLOR
    if not COLOR_PATTERN.match(value):
        raise ValidationFailed("Color must be a hex value like #3b82f6")
    return value


def clean_positive_prompt(value: str | None) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationFailed("Positive prompt is required")
    if len(text) > MAX_POSITIVE_PROMPT_LENGTH:
        raise ValidationFailed(
            f"Positive prompt must be {MAX_POSITIVE_PROMPT_LENGTH} characters or less"
        )
    return text


def check_steps(steps: int) -> int:
    if isinstance(steps, bool) or not isinstance(steps, int) or not MIN_STEPS <= steps <= MAX_STEPS:
        raise ValidationFailed(f"Steps must be between {MIN_STEPS} and {MAX_STEPS}")
    return steps


def check_cfg_scale(cfg_scale: float) -> float:
    if not MIN_CFG_SCALE <= cfg_scale <= MAX_CFG_SCALE:
        raise ValidationFailed(
            f"CFG scale must be between {MIN_CFG_SCALE:g} and {MAX_CFG_SCALE:g}"
        )
    return float(cfg_scale)


def check_dimensions(width: int, height: int) -> tuple[int, int]:
    if width not in VALID_DIMENSIONS or height not in VALID_DIMENSIONS:
        raise ValidationFailed("Invalid dimensions")
    return width, height
