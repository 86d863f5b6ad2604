"""Suitability-driven fan-out — run every qualifying track for one source.

Tracks run strictly one after another with a fixed pause between them; the
AI provider rate-limits aggressively and sequential calls are the throttle.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydantic import BaseModel, Field

from aska.config import AskaConfig
from aska.content.models import SourceStatus, SuitabilityEntry
from aska.content.store import ContentStore
from aska.errors import StoreError
from aska.generator.flow import TrackStatus, generate_for_track
from aska.generator.ledger import UsageLedger
from aska.generator.tracks import get_track

logger = logging.getLogger(__name__)

ALL_CONTENT_TYPES = "all"


class ProcessedEntry(BaseModel):
    content_type: str
    track_key: str
    success: bool
    message: str
    item_count: int | None = None


class SkippedEntry(BaseModel):
    content_type: str
    reason: str


class FanoutResult(BaseModel):
    success: bool
    source_id: int
    processed: list[ProcessedEntry] = Field(default_factory=list)
    skipped: list[SkippedEntry] = Field(default_factory=list)
    total_processed: int = 0
    total_skipped: int = 0

    def to_payload(self) -> dict:
        """Caller-facing shape with camelCase keys and counts."""
        return {
            "success": self.success,
            "sourceId": self.source_id,
            "processed": [
                {
                    "contentType": p.content_type,
                    "trackKey": p.track_key,
                    "success": p.success,
                    "message": p.message,
                    **({"itemCount": p.item_count} if p.item_count is not None else {}),
                }
                for p in self.processed
            ],
            "skipped": [{"contentType": s.content_type, "reason": s.reason} for s in self.skipped],
            "totalProcessed": self.total_processed,
            "totalSkipped": self.total_skipped,
        }


def _skip_all(source_id: int, reason: str) -> FanoutResult:
    logger.warning("Fan-out for source %s skipped: %s", source_id, reason)
    return FanoutResult(
        success=False,
        source_id=source_id,
        skipped=[SkippedEntry(content_type=ALL_CONTENT_TYPES, reason=reason)],
        total_skipped=1,
    )


def _skip_reason(entry: SuitabilityEntry, min_confidence: float) -> str | None:
    """Return why an entry does not qualify, or None if it does."""
    if not entry.suitable:
        return "Not suitable for this content type"
    if entry.confidence < min_confidence:
        return (
            f"Confidence {round(entry.confidence * 100)}% is below threshold "
            f"{round(min_confidence * 100)}%"
        )
    return None


def process_source_for_all_suitable_types(
    source_id: int,
    store: ContentStore,
    *,
    min_confidence: float | None = None,
    config: AskaConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
    ledger: UsageLedger | None = None,
) -> FanoutResult:
    """Run the single-track flow for each track the suitability analysis approves.

    Args:
        source_id: Source to fan out.
        store: Content store.
        min_confidence: Qualifying threshold; ``config.fanout.min_confidence``
            when omitted.
        config: Pipeline config; defaults apply when omitted.
        sleep: Called with the inter-track delay between qualifying entries.
        ledger: Usage ledger shared by every track run.

    Returns:
        FanoutResult. ``success`` is True when at least one track generated
        content. Per-track failures are recorded, never raised.
    """
    config = config or AskaConfig()
    ledger = ledger or UsageLedger(store)
    threshold = config.fanout.min_confidence if min_confidence is None else min_confidence
    delay = config.fanout.delay_seconds

    try:
        source = store.get_source(source_id)
    except StoreError as exc:
        return _skip_all(source_id, f"Failed to fetch source: {exc}")
    if source is None:
        return _skip_all(source_id, "Failed to fetch source: Source not found")
    if source.content_status != SourceStatus.ACTIVE:
        return _skip_all(
            source_id, f"Source is not active (status: {source.content_status.value})"
        )
    if not source.suitability_analysis:
        return _skip_all(source_id, "No suitability analysis found for this source")

    skipped: list[SkippedEntry] = []
    qualifying: list[str] = []
    for content_type, entry in source.suitability_analysis.items():
        if get_track(content_type) is None:
            skipped.append(
                SkippedEntry(content_type=content_type, reason="No generation track registered")
            )
            continue
        reason = _skip_reason(entry, threshold)
        if reason:
            skipped.append(SkippedEntry(content_type=content_type, reason=reason))
        else:
            qualifying.append(content_type)

    logger.info(
        "Fan-out for source %s: %d qualifying, %d skipped",
        source_id,
        len(qualifying),
        len(skipped),
    )

    processed: list[ProcessedEntry] = []
    for index, content_type in enumerate(qualifying):
        track = get_track(content_type)
        try:
            result = generate_for_track(track.key, source_id, store, config=config, ledger=ledger)
        except Exception as exc:
            logger.exception("Track %s raised for source %s", content_type, source_id)
            processed.append(
                ProcessedEntry(
                    content_type=content_type,
                    track_key=track.key.value,
                    success=False,
                    message=f"Error: {exc}",
                )
            )
        else:
            if result.status == TrackStatus.SKIPPED:
                skipped.append(SkippedEntry(content_type=content_type, reason="Already generated"))
            else:
                processed.append(
                    ProcessedEntry(
                        content_type=content_type,
                        track_key=result.track_key,
                        success=result.success,
                        message=result.message,
                        item_count=result.item_count if result.success else None,
                    )
                )

        if index < len(qualifying) - 1:
            sleep(delay)

    success = any(p.success for p in processed)
    logger.info(
        "Fan-out for source %s finished: %d processed (%d ok), %d skipped",
        source_id,
        len(processed),
        sum(p.success for p in processed),
        len(skipped),
    )
    return FanoutResult(
        success=success,
        source_id=source_id,
        processed=processed,
        skipped=skipped,
        total_processed=len(processed),
        total_skipped=len(skipped),
    )
