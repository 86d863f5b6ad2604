"""AI steps that turn normalized source text into metadata.

Each adapter runs one stored prompt over the text, parses the JSON answer,
and validates it.  Errors surface as ``LLMError`` (call/parse failures) or
``MetadataValidationError`` (well-formed JSON with bad content).
"""

from __future__ import annotations

import logging

from aska.config import LLMSectionConfig
from aska.content.models import SuitabilityAnalysis
from aska.llm import call_llm, parse_json_object
from aska.sourcing.validators import (
    EnrichedContent,
    ExtractedMetadata,
    validate_enriched_content,
    validate_extracted_metadata,
    validate_suitability_analysis,
)

logger = logging.getLogger(__name__)


def _run_prompt(processed_text: str, prompt_content: str, llm: LLMSectionConfig, label: str) -> dict:
    prompt = f"{prompt_content.strip()}\n\nSource Content:\n{processed_text}"
    text = call_llm(
        prompt, model=llm.model, timeout=llm.timeout, use_cli=llm.use_cli, label=label
    )
    return parse_json_object(text, label=label)


def extract_metadata(
    processed_text: str,
    prompt_content: str,
    llm: LLMSectionConfig | None = None,
) -> ExtractedMetadata:
    """Ask the model for theme, tags, category, and summary."""
    parsed = _run_prompt(processed_text, prompt_content, llm or LLMSectionConfig(), "metadata")
    return validate_extracted_metadata(parsed)


def enrich_content(
    processed_text: str,
    prompt_content: str,
    llm: LLMSectionConfig | None = None,
    *,
    title_override: str | None = None,
) -> EnrichedContent:
    """Ask the model for a title and key phrases."""
    parsed = _run_prompt(processed_text, prompt_content, llm or LLMSectionConfig(), "enrichment")
    return validate_enriched_content(parsed, title_override=title_override)


def analyze_suitability(
    processed_text: str,
    prompt_content: str,
    llm: LLMSectionConfig | None = None,
) -> SuitabilityAnalysis:
    """Ask the model which content types this source can feed."""
    parsed = _run_prompt(processed_text, prompt_content, llm or LLMSectionConfig(), "suitability")
    analysis = validate_suitability_analysis(parsed)
    logger.debug("Suitability analysis covers %s", sorted(analysis))
    return analysis
