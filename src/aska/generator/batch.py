"""Per-track batch — run one track over the next N unprocessed sources."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Collection, Iterator
from typing import NamedTuple

from pydantic import BaseModel, Field

from aska.config import AskaConfig
from aska.content.models import SourceRecord, SourceStatus
from aska.content.store import ContentStore
from aska.generator.flow import TrackResult, generate_for_track
from aska.generator.ledger import UsageLedger
from aska.generator.tracks import TrackDefinition, TrackKey, require_track

logger = logging.getLogger(__name__)


class UnprocessedCount(NamedTuple):
    available: int
    total: int


class BatchResult(BaseModel):
    success: bool
    track_key: str
    processed: int = 0
    failed: int = 0
    total_requested: int
    results: list[TrackResult] = Field(default_factory=list)
    message: str


DEFAULT_PAGE_SIZE = 100


def _active_sources(store: ContentStore) -> list[SourceRecord]:
    return store.list_sources(SourceStatus.ACTIVE)


def _iter_active_sources(store: ContentStore, page_size: int) -> Iterator[SourceRecord]:
    """Yield active sources in id order, fetching ``page_size`` at a time."""
    offset = 0
    while True:
        page = store.list_sources(SourceStatus.ACTIVE, offset=offset, limit=page_size)
        yield from page
        if len(page) < page_size:
            return
        offset += page_size


def find_next_unprocessed_source(
    track: TrackDefinition | TrackKey | str,
    store: ContentStore,
    *,
    exclude: Collection[int] = (),
    ledger: UsageLedger | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> SourceRecord | None:
    """Return the lowest-id active source the track has not used yet.

    Sources are scanned a page at a time, so the search stops at the first
    page holding a match.
    """
    definition = require_track(track)
    ledger = ledger or UsageLedger(store)
    for source in _iter_active_sources(store, max(page_size, 1)):
        if source.id in exclude:
            continue
        if not ledger.is_used(source.id, definition):
            return source
    return None


def count_unprocessed_sources(
    track: TrackDefinition | TrackKey | str,
    store: ContentStore,
    *,
    ledger: UsageLedger | None = None,
) -> UnprocessedCount:
    definition = require_track(track)
    ledger = ledger or UsageLedger(store)
    sources = _active_sources(store)
    available = sum(1 for s in sources if not ledger.is_used(s.id, definition))
    return UnprocessedCount(available=available, total=len(sources))


def _summary(label: str, processed: int, failed: int, requested: int) -> str:
    attempted = processed + failed
    if failed:
        return (
            f"Processed {processed} of {attempted} source(s) for {label}; "
            f"{failed} failed."
        )
    if attempted < requested:
        return (
            f"Processed {processed} source(s) for {label}; stopped early, "
            f"no unprocessed sources remain."
        )
    return f"Processed all {processed} requested source(s) for {label}."


def batch_generate(
    track: TrackDefinition | TrackKey | str,
    count: int,
    store: ContentStore,
    *,
    config: AskaConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
    ledger: UsageLedger | None = None,
) -> BatchResult:
    """Run ``track`` over up to ``count`` unprocessed sources, one at a time.

    A source that fails is excluded from later picks in this run, so a
    persistently failing source cannot be retried in a loop.
    """
    config = config or AskaConfig()
    definition = require_track(track)
    ledger = ledger or UsageLedger(store)
    delay = config.batch.delay_seconds

    results: list[TrackResult] = []
    failed_ids: set[int] = set()
    processed = failed = 0

    logger.info("Batch %s: up to %d source(s)", definition.key, count)
    for attempt in range(max(count, 0)):
        source = find_next_unprocessed_source(
            definition,
            store,
            exclude=failed_ids,
            ledger=ledger,
            page_size=config.batch.page_size,
        )
        if source is None:
            logger.info("Batch %s: no unprocessed sources remain", definition.key)
            break
        if attempt > 0:
            sleep(delay)

        result = generate_for_track(definition.key, source.id, store, config=config, ledger=ledger)
        results.append(result)
        if result.success:
            processed += 1
        else:
            failed += 1
            failed_ids.add(source.id)

    message = _summary(definition.label, processed, failed, count)
    logger.info("Batch %s finished: %s", definition.key, message)
    return BatchResult(
        success=failed == 0,
        track_key=definition.key.value,
        processed=processed,
        failed=failed,
        total_requested=count,
        results=results,
        message=message,
    )
