"""Validation of AI-produced source metadata.

Each validator takes the parsed JSON object from the model and returns a
typed value, or raises ``MetadataValidationError`` listing every problem.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field

from aska.content.models import CATEGORY_BY_THEME, SuitabilityAnalysis, SuitabilityEntry, Theme
from aska.errors import MetadataValidationError

SUMMARY_ALIASES = ("summary", "summary_text", "metadata_summary", "content_summary")

SUITABILITY_KEYS = (
    "trivia_multiple_choice",
    "trivia_true_false",
    "trivia_who_am_i",
    "motivational",
    "facts",
    "wisdom",
)

# Key names written by older prompt revisions
LEGACY_SUITABILITY_KEYS = {
    "multiple_choice_trivia": "trivia_multiple_choice",
    "true_false_trivia": "trivia_true_false",
    "who_am_i_trivia": "trivia_who_am_i",
}

_AMPERSAND_RE = re.compile(r"\s*&\s*")
_WHITESPACE_RE = re.compile(r"\s+")


class ExtractedMetadata(BaseModel):
    theme: Theme
    tags: list[str]
    category: str | None = None
    summary: str


class EnrichedContent(BaseModel):
    title: str
    key_phrases: list[str] = Field(default_factory=list)


def valid_themes_list() -> str:
    """Comma-separated theme names, for prompt text."""
    return ", ".join(t.value for t in Theme)


def _normalize_theme_text(text: str) -> str:
    text = _AMPERSAND_RE.sub(" and ", text)
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def match_theme(raw: str) -> Theme | None:
    """Match a theme case-insensitively, treating "&" and "and" alike."""
    wanted = _normalize_theme_text(raw)
    for theme in Theme:
        if _normalize_theme_text(theme.value) == wanted:
            return theme
    return None


def _first_summary(obj: dict[str, Any]) -> str | None:
    for key in SUMMARY_ALIASES:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def validate_extracted_metadata(obj: Any) -> ExtractedMetadata:
    """Validate theme/tags/category/summary from the metadata-extraction step."""
    if not isinstance(obj, dict):
        raise MetadataValidationError(["metadata must be a JSON object"])

    errors: list[str] = []
    theme: Theme | None = None

    theme_raw = obj.get("theme")
    if not isinstance(theme_raw, str) or not theme_raw.strip():
        errors.append(f"theme is required. Valid themes are: {valid_themes_list()}")
    else:
        theme = match_theme(theme_raw)
        if theme is None:
            errors.append(
                f'theme "{theme_raw.strip()}" is not valid. Must be one of these '
                f"{len(Theme)} standardized themes: {valid_themes_list()}"
            )

    tags = obj.get("tags")
    if not isinstance(tags, list) or not tags or any(not isinstance(t, str) for t in tags):
        errors.append("tags must be a non-empty array of strings")

    category = obj.get("category")
    if category is not None and not isinstance(category, str):
        errors.append("category must be a string or null")
    elif isinstance(category, str) and theme is not None:
        allowed = CATEGORY_BY_THEME[theme]
        if category not in allowed:
            errors.append(
                f'category "{category}" is not valid for theme "{theme.value}". '
                f"Valid categories: {', '.join(allowed)}"
            )

    summary = _first_summary(obj)
    if summary is None:
        errors.append("summary is required")

    if errors:
        raise MetadataValidationError(errors)

    return ExtractedMetadata(theme=theme, tags=tags, category=category, summary=summary)


def validate_enriched_content(obj: Any, *, title_override: str | None = None) -> EnrichedContent:
    """Validate title/key_phrases from the enrichment step.

    A non-blank ``title_override`` replaces the AI title.
    """
    if not isinstance(obj, dict):
        raise MetadataValidationError(["enrichment must be a JSON object"])

    errors: list[str] = []
    title = obj.get("title")
    key_phrases = obj.get("key_phrases")

    if not isinstance(title, str) or not title:
        errors.append("title is required")
    if not isinstance(key_phrases, list) or any(not isinstance(p, str) for p in key_phrases):
        errors.append("key_phrases must be an array of strings")

    if errors:
        raise MetadataValidationError(errors)

    if title_override and title_override.strip():
        title = title_override.strip()
    return EnrichedContent(title=title, key_phrases=key_phrases)


def validate_suitability_analysis(obj: Any) -> SuitabilityAnalysis:
    """Validate the per-content-type suitability triples.

    Entries may use legacy key names; they are returned under the current
    track keys. Content types the model left out are simply absent.
    """
    if not isinstance(obj, dict):
        raise MetadataValidationError(["suitability analysis must be a JSON object"])

    legacy_by_key = {v: k for k, v in LEGACY_SUITABILITY_KEYS.items()}
    errors: list[str] = []
    result: SuitabilityAnalysis = {}

    for key in SUITABILITY_KEYS:
        entry = obj.get(key)
        if entry is None and key in legacy_by_key:
            entry = obj.get(legacy_by_key[key])
        if not entry:
            continue
        if not isinstance(entry, dict):
            errors.append(f"{key} must be an object")
            continue

        suitable = entry.get("suitable")
        confidence = entry.get("confidence")
        reasoning = entry.get("reasoning")

        if not isinstance(suitable, bool):
            errors.append(f"{key}.suitable must be a boolean")
            continue
        if (
            isinstance(confidence, bool)
            or not isinstance(confidence, (int, float))
            or not 0 <= confidence <= 1
        ):
            errors.append(f"{key}.confidence must be a number between 0 and 1")
            continue
        if not isinstance(reasoning, str):
            errors.append(f"{key}.reasoning must be a string")
            continue

        result[key] = SuitabilityEntry(
            suitable=suitable, confidence=float(confidence), reasoning=reasoning
        )

    if errors:
        raise MetadataValidationError(errors)
    return result
