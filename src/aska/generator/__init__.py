"""Content generation — track registry, usage ledger, and the flows that run tracks."""

from aska.generator.batch import (
    BatchResult,
    UnprocessedCount,
    batch_generate,
    count_unprocessed_sources,
    find_next_unprocessed_source,
)
from aska.generator.fanout import (
    FanoutResult,
    ProcessedEntry,
    SkippedEntry,
    process_source_for_all_suitable_types,
)
from aska.generator.flow import ErrorType, TrackResult, TrackStatus, generate_for_track
from aska.generator.ledger import UsageLedger
from aska.generator.tracks import (
    FIELD_ALIASES,
    TRACKS,
    TrackDefinition,
    TrackKey,
    coerce_track_key,
    get_track,
    require_track,
)

__all__ = [
    "BatchResult",
    "ErrorType",
    "FIELD_ALIASES",
    "FanoutResult",
    "ProcessedEntry",
    "SkippedEntry",
    "TRACKS",
    "TrackDefinition",
    "TrackKey",
    "TrackResult",
    "TrackStatus",
    "UnprocessedCount",
    "UsageLedger",
    "batch_generate",
    "coerce_track_key",
    "count_unprocessed_sources",
    "find_next_unprocessed_source",
    "generate_for_track",
    "get_track",
    "process_source_for_all_suitable_types",
    "require_track",
]
