"""Ingestion pipeline — pasted text → enriched source record.

Steps:
  1. Reject empty or oversized input.
  2. Normalize the text.
  3. Load the metadata-extraction and content-enrichment prompts.
  4. Run both AI steps (either failing aborts ingestion).
  5. Run the suitability analysis (failures are logged, never fatal).
  6. Persist one ``SourceRecord``.
"""

from __future__ import annotations

import logging
import uuid

from pydantic import BaseModel, Field

from aska.config import AskaConfig
from aska.content.models import SourceRecord, SuitabilityAnalysis
from aska.content.store import ContentStore
from aska.errors import MetadataValidationError, StoreError
from aska.llm import LLMError
from aska.prompts import PromptType, get_active_prompt
from aska.sourcing.adapters import analyze_suitability, enrich_content, extract_metadata
from aska.text import process_text

logger = logging.getLogger(__name__)


class IngestMetadata(BaseModel):
    """What the pipeline derived, echoed back to the operator."""

    theme: str
    category: str | None = None
    title: str
    tags: list[str] = Field(default_factory=list)
    summary: str
    word_count: int
    char_count: int
    key_phrases: list[str] = Field(default_factory=list)
    suitability_analysis: SuitabilityAnalysis | None = None


class IngestResult(BaseModel):
    ok: bool
    error: str | None = None
    record_id: int | None = None
    metadata: IngestMetadata | None = None


def _run_suitability(
    store: ContentStore, processed_text: str, config: AskaConfig
) -> SuitabilityAnalysis | None:
    """Best-effort suitability analysis; returns None on any failure."""
    prompt = get_active_prompt(store, PromptType.CONTENT_SUITABILITY_ANALYSIS)
    if prompt is None:
        logger.warning("No content suitability analysis prompt found, skipping analysis")
        return None
    try:
        analysis = analyze_suitability(processed_text, prompt.prompt_content, config.llm)
    except (LLMError, MetadataValidationError) as exc:
        logger.warning("Content suitability analysis failed: %s", exc)
        return None
    if not analysis:
        logger.warning("Content suitability analysis came back empty")
        return None
    logger.info("Suitability analysis completed for %s", ", ".join(analysis))
    return analysis


def ingest_source(
    raw: str,
    store: ContentStore,
    *,
    title_override: str | None = None,
    config: AskaConfig | None = None,
) -> IngestResult:
    """Ingest one pasted source and persist it.

    Args:
        raw: Raw pasted text.
        store: Destination store (also holds the prompt library).
        title_override: Operator-supplied title that replaces the AI title.
        config: Pipeline config; defaults apply when omitted.

    Returns:
        IngestResult with ``ok`` False and a readable ``error`` on failure.
    """
    config = config or AskaConfig()
    raw = (raw or "").strip()
    limit = config.ingest.max_input_chars

    if not raw:
        return IngestResult(ok=False, error="Please paste or type source content.")
    if len(raw) > limit:
        return IngestResult(
            ok=False, error=f"Input is too long ({len(raw)} chars). Limit is {limit}."
        )

    processed = process_text(raw)
    text = processed.processed_text

    extraction_prompt = get_active_prompt(store, PromptType.METADATA_EXTRACTION)
    enrichment_prompt = get_active_prompt(store, PromptType.CONTENT_ENRICHMENT)
    if extraction_prompt is None or enrichment_prompt is None:
        return IngestResult(
            ok=False,
            error="Active AI prompts are not configured. Please add prompts in the prompt library.",
        )

    try:
        meta = extract_metadata(text, extraction_prompt.prompt_content, config.llm)
        enriched = enrich_content(
            text, enrichment_prompt.prompt_content, config.llm, title_override=title_override
        )
    except (LLMError, MetadataValidationError) as exc:
        logger.warning("Ingestion AI step failed: %s", exc)
        return IngestResult(ok=False, error=str(exc))

    suitability = None
    if config.ingest.run_suitability:
        suitability = _run_suitability(store, text, config)

    record = SourceRecord(
        content_text=text,
        theme=meta.theme,
        category=meta.category,
        tags=meta.tags,
        summary=meta.summary,
        title=enriched.title,
        key_phrases=enriched.key_phrases,
        suitability_analysis=suitability,
        word_count=processed.word_count,
        char_count=processed.char_count,
        ingestion_process_id=str(uuid.uuid4()),
        metadata={"key_phrases": enriched.key_phrases},
    )

    try:
        stored = store.insert_source(record)
    except StoreError as exc:
        logger.error("Failed to save ingested content: %s", exc)
        return IngestResult(ok=False, error=str(exc) or "Failed to save ingested content.")

    logger.info("Ingested source %d (%s)", stored.id, stored.theme.value)
    return IngestResult(
        ok=True,
        record_id=stored.id,
        metadata=IngestMetadata(
            theme=stored.theme.value,
            category=stored.category,
            title=stored.title,
            tags=stored.tags,
            summary=stored.summary,
            word_count=stored.word_count,
            char_count=stored.char_count,
            key_phrases=stored.key_phrases,
            suitability_analysis=suitability,
        ),
    )
