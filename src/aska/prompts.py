"""Prompt configuration — which stored prompt drives each AI step."""

from __future__ import annotations

import logging
from enum import StrEnum

from aska.content.models import Prompt
from aska.content.store import ContentStore

logger = logging.getLogger(__name__)


class PromptType(StrEnum):
    """Every AI step that loads its instructions from the prompt library."""

    METADATA_EXTRACTION = "metadata_extraction"
    CONTENT_ENRICHMENT = "content_enrichment"
    CONTENT_SUITABILITY_ANALYSIS = "content_suitability_analysis"
    GENERATOR_WISDOM = "generator_wisdom"
    GENERATOR_GREETINGS = "generator_greetings"
    GENERATOR_MOTIVATIONAL = "generator_motivational"
    GENERATOR_FACTS = "generator_facts"
    GENERATOR_TRIVIA_MULTIPLE_CHOICE = "generator_trivia_multiple_choice"
    GENERATOR_TRIVIA_TRUE_FALSE = "generator_trivia_true_false"
    GENERATOR_TRIVIA_WHO_AM_I = "generator_trivia_who_am_i"


def get_active_prompt(store: ContentStore, prompt_type: PromptType | str) -> Prompt | None:
    """Return the newest active prompt with non-empty content, or None."""
    prompt = store.get_active_prompt(str(prompt_type))
    if prompt is None or not prompt.prompt_content.strip():
        logger.warning("No active prompt found for %s", prompt_type)
        return None
    return prompt
