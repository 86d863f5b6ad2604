"""Single-track generation — the only code path that creates generated items.

Steps (each failure exits early with a structured result):
  1. Skip if the usage ledger says the pair is already done.
  2. Load the active prompt for the track.
  3. Load the source text.
  4. Call the track's generator.
  5. Fail softly if the model produced no items.
  6. Normalize and validate each item; rejects are counted, not fatal.
  7. Fail with a field summary if every item was rejected.
  8. Insert the batch in one write.
  9. Mark the pair used (best effort).
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from aska.config import AskaConfig
from aska.content.store import ContentStore
from aska.errors import ConfigurationError, SourceNotFoundError, StoreError
from aska.generator.ledger import UsageLedger
from aska.generator.tracks import TrackDefinition, TrackKey, get_track
from aska.llm import LLMError
from aska.prompts import get_active_prompt

logger = logging.getLogger(__name__)

SAMPLE_PREVIEW_CHARS = 500


class TrackStatus(StrEnum):
    GENERATED = "generated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ErrorType(StrEnum):
    """technical: call or write failed; structural: config or data shape;
    logical: the model had nothing to say."""

    TECHNICAL = "technical"
    STRUCTURAL = "structural"
    LOGICAL = "logical"


class TrackResult(BaseModel):
    """Outcome of one generation attempt for one (source, track) pair."""

    track_key: str
    source_id: int
    status: TrackStatus
    success: bool = False
    message: str
    error_type: ErrorType | None = None
    retryable: bool = False
    item_count: int = 0
    items: list[dict[str, Any]] = Field(default_factory=list)
    raw_count: int = 0
    normalized_count: int = 0
    rejected_count: int = 0
    sample: Any = None


def _failed(
    track_key: str, source_id: int, message: str, error_type: ErrorType, **extra: Any
) -> TrackResult:
    logger.warning("Track %s failed for source %s: %s", track_key, source_id, message)
    return TrackResult(
        track_key=track_key,
        source_id=source_id,
        status=TrackStatus.FAILED,
        message=message,
        error_type=error_type,
        **extra,
    )


def _normalize_one(track: TrackDefinition, raw: Any, source_id: int) -> tuple[BaseModel | None, str]:
    """Return (record, "") on success or (None, reason) on rejection."""
    if not isinstance(raw, dict):
        return None, "item is not an object"
    try:
        record = track.normalize(raw, source_id)
    except ValidationError as exc:
        return None, f"normalization failed: {exc.error_count()} field error(s)"
    if record is None:
        return None, "required fields missing or invalid"
    if track.validate is not None:
        errors = track.validate(record)
        if errors:
            return None, ", ".join(errors)
    return record, ""


def _load_inputs(track: TrackDefinition, source_id: int, store: ContentStore) -> tuple[str, str]:
    """Return (prompt text, source text) for one generation run."""
    prompt = get_active_prompt(store, track.prompt_type)
    if prompt is None:
        raise ConfigurationError(f"No active prompt configured for {track.label}.")

    source = store.get_source(source_id)
    if source is None:
        raise SourceNotFoundError(f"Source {source_id} was not found.")
    if not source.content_text.strip():
        raise SourceNotFoundError(f"Source {source_id} is missing content_text.")
    return prompt.prompt_content, source.content_text


def _rejection_summary(track: TrackDefinition, raw_count: int, sample: Any) -> str:
    parts = [f"All {raw_count} generated item(s) failed validation or normalization."]
    parts.append(f"Expected fields: {', '.join(track.expected_fields)}")
    received = ", ".join(sample.keys()) if isinstance(sample, dict) else ""
    parts.append(f"Received fields: {received or '(none)'}")
    if sample is not None:
        preview = json.dumps(sample, indent=2, default=str)
        suffix = "..." if len(preview) > SAMPLE_PREVIEW_CHARS else ""
        parts.append(f"Sample item: {preview[:SAMPLE_PREVIEW_CHARS]}{suffix}")
    return " | ".join(parts)


def generate_for_track(
    track_key: TrackKey | str,
    source_id: int,
    store: ContentStore,
    *,
    config: AskaConfig | None = None,
    additional_instructions: str | None = None,
    ledger: UsageLedger | None = None,
) -> TrackResult:
    """Generate, validate, and persist one track's content for one source.

    Args:
        track_key: Track to run (``TrackKey`` or a string like "trivia-true-false").
        source_id: Source to generate from.
        store: Content store holding sources, prompts, and item tables.
        config: Pipeline config; defaults apply when omitted.
        additional_instructions: Extra operator instructions appended to the prompt.
        ledger: Usage ledger; one over ``store`` is created when omitted.

    Returns:
        TrackResult. Never raises for expected failures (LLM errors, rejected
        items, store writes).
    """
    config = config or AskaConfig()
    ledger = ledger or UsageLedger(store)

    track = get_track(track_key)
    if track is None:
        return _failed(
            str(track_key), source_id, f'Track "{track_key}" is not recognized.', ErrorType.STRUCTURAL
        )
    key = track.key.value

    if ledger.is_used(source_id, track):
        logger.info("Skipping %s for source %s: already generated", key, source_id)
        return TrackResult(
            track_key=key,
            source_id=source_id,
            status=TrackStatus.SKIPPED,
            message=f"{track.label} content was already generated for source {source_id}.",
        )

    try:
        prompt_text, source_text = _load_inputs(track, source_id, store)
    except (ConfigurationError, SourceNotFoundError) as exc:
        return _failed(key, source_id, str(exc), ErrorType.STRUCTURAL)

    if additional_instructions and additional_instructions.strip():
        prompt_text += f"\n\nAdditional Instructions:\n{additional_instructions.strip()}"

    try:
        raw_items = track.generate(source_text, prompt_text, llm=config.llm)
    except LLMError as exc:
        return _failed(
            key, source_id, str(exc), ErrorType.TECHNICAL, retryable=exc.retryable
        )

    if not raw_items:
        return _failed(
            key,
            source_id,
            f"No items generated: the model returned nothing to persist for {track.label}.",
            ErrorType.LOGICAL,
        )

    records: list[BaseModel] = []
    reasons: list[str] = []
    first_reject: Any = None
    for raw in raw_items:
        record, reason = _normalize_one(track, raw, source_id)
        if record is None:
            reasons.append(reason)
            if first_reject is None:
                first_reject = raw
            logger.debug(
                "Rejected %s item (%s); keys: %s",
                key,
                reason,
                sorted(raw) if isinstance(raw, dict) else type(raw).__name__,
            )
            continue
        records.append(record)

    if not records:
        return _failed(
            key,
            source_id,
            _rejection_summary(track, len(raw_items), first_reject),
            ErrorType.STRUCTURAL,
            raw_count=len(raw_items),
            rejected_count=len(reasons),
            sample=first_reject,
        )

    try:
        rows = store.insert_items(track.target_table, records)
    except StoreError as exc:
        return _failed(
            key,
            source_id,
            f"Failed to persist generated content: {exc}",
            ErrorType.TECHNICAL,
            raw_count=len(raw_items),
            normalized_count=len(records),
            rejected_count=len(reasons),
        )

    ledger.mark_used(source_id, track)

    message = f"Successfully generated {len(rows)} item(s) for {track.label}."
    if reasons:
        message += f" Skipped {len(reasons)} item(s) due to: {'; '.join(reasons)}."
    logger.info("Generated %d %s item(s) for source %s", len(rows), key, source_id)

    return TrackResult(
        track_key=key,
        source_id=source_id,
        status=TrackStatus.GENERATED,
        success=True,
        message=message,
        item_count=len(rows),
        items=rows,
        raw_count=len(raw_items),
        normalized_count=len(records),
        rejected_count=len(reasons),
    )
