"""Usage ledger — which (source, track) pairs have already been generated.

Two signals record a completed pair:
  - at least one row in the track's table referencing the source
  - the track's usage key in the source's ``used_for`` list

``is_used`` is true if either signal says so. ``mark_used`` writes the
``used_for`` signal; the rows themselves are written by the generation flow.

The check-then-mark sequence is not atomic: two concurrent runs for the same
source and track can both pass ``is_used`` before either marks.
"""

from __future__ import annotations

import logging

from aska.content.store import ContentStore
from aska.errors import StoreError
from aska.generator.tracks import TrackDefinition, TrackKey, require_track

logger = logging.getLogger(__name__)


class UsageLedger:
    """Idempotency bookkeeping over a ContentStore."""

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    def is_used(self, source_id: int, track: TrackDefinition | TrackKey | str) -> bool:
        """Return True if ``track`` has already produced content for ``source_id``.

        A failed lookup counts as "not used" so an operator is never blocked
        by a read error; the cost is a possible duplicate.
        """
        track = require_track(track)
        try:
            if self._store.count_items(track.target_table, source_id) > 0:
                return True
            source = self._store.get_source(source_id)
        except (StoreError, OSError) as exc:
            logger.warning(
                "Usage lookup failed for source %s / %s, treating as unused: %s",
                source_id,
                track.key,
                exc,
            )
            return False

        if source is None:
            return False
        used_for = {str(v).strip().lower() for v in source.used_for}
        return track.usage_key.lower() in used_for

    def mark_used(self, source_id: int, track: TrackDefinition | TrackKey | str) -> None:
        """Append the track's usage key to the source's ``used_for`` list.

        Idempotent and case-insensitive. The store appends under its write
        lock, so runs for different tracks on one source never drop each
        other's keys. Failures are logged and swallowed; the generated rows
        already record the success.
        """
        track = require_track(track)
        try:
            if self._store.get_source(source_id) is None:
                logger.warning("Cannot mark usage: source %s not found", source_id)
                return
            self._store.append_used_for(source_id, track.usage_key)
        except (StoreError, OSError) as exc:
            logger.warning(
                "Failed to record usage %s for source %s: %s", track.usage_key, source_id, exc
            )
