"""Sourcing — raw pasted text → enriched, persisted source records."""

from aska.sourcing.ingest import IngestMetadata, IngestResult, ingest_source
from aska.sourcing.validators import (
    EnrichedContent,
    ExtractedMetadata,
    match_theme,
    validate_enriched_content,
    validate_extracted_metadata,
    validate_suitability_analysis,
)

__all__ = [
    "EnrichedContent",
    "ExtractedMetadata",
    "IngestMetadata",
    "IngestResult",
    "ingest_source",
    "match_theme",
    "validate_enriched_content",
    "validate_extracted_metadata",
    "validate_suitability_analysis",
]
