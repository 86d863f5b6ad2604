"""Tests for the per-track batch over unprocessed sources."""

from __future__ import annotations

from unittest.mock import patch

from aska.config import AskaConfig
from aska.content.models import SourceStatus
from aska.content.store import FACTS_TABLE
from aska.generator.batch import (
    batch_generate,
    count_unprocessed_sources,
    find_next_unprocessed_source,
)
from aska.generator.tracks import TrackKey

GENERATE = "aska.generator.tracks.generate_items"


def _facts(source_text, prompt_text, *, content_type, **kwargs):
    return [{"fact_text": f"fact from: {source_text}"}]


class _Sleeps(list):
    def __call__(self, seconds: float) -> None:
        self.append(seconds)


class TestFindNext:
    def test_lowest_unused_active_source(self, store, add_source):
        add_source(content_text="one", used_for=["fact"])
        archived = add_source(content_text="two")
        store.update_source_status(archived.id, SourceStatus.ARCHIVED)
        third = add_source(content_text="three")
        add_source(content_text="four")

        found = find_next_unprocessed_source(TrackKey.FACTS, store)
        assert found.id == third.id

    def test_exclude(self, store, add_source):
        first = add_source()
        second = add_source()
        found = find_next_unprocessed_source("facts", store, exclude={first.id})
        assert found.id == second.id

    def test_none_left(self, store, add_source):
        add_source(used_for=["fact"])
        assert find_next_unprocessed_source("facts", store) is None


def test_count_unprocessed(store, add_source):
    add_source(used_for=["fact"])
    add_source()
    add_source(used_for=["wisdom"])
    inactive = add_source()
    store.update_source_status(inactive.id, SourceStatus.INACTIVE)

    count = count_unprocessed_sources(TrackKey.FACTS, store)
    assert count.available == 2
    assert count.total == 3


class TestBatchGenerate:
    def test_processes_in_id_order_with_delays(self, store, add_source, generator_prompts):
        ids = [add_source(content_text=f"s{i}").id for i in range(3)]
        sleeps = _Sleeps()
        with patch(GENERATE, side_effect=_facts):
            result = batch_generate("facts", 3, store, sleep=sleeps)

        assert result.success is True
        assert result.processed == 3
        assert [r.source_id for r in result.results] == ids
        assert sleeps == [2.0, 2.0]
        assert result.message == "Processed all 3 requested source(s) for Facts."
        assert all(store.count_items(FACTS_TABLE, i) == 1 for i in ids)

    def test_stops_early(self, store, add_source, generator_prompts):
        add_source()
        sleeps = _Sleeps()
        with patch(GENERATE, side_effect=_facts):
            result = batch_generate("facts", 5, store, sleep=sleeps)
        assert result.processed == 1
        assert result.total_requested == 5
        assert "stopped early" in result.message
        assert sleeps == []

    def test_failed_source_not_retried(self, store, add_source, generator_prompts):
        bad = add_source(content_text="bad")
        good = add_source(content_text="good")

        def generate(source_text, prompt_text, *, content_type, **kwargs):
            if source_text == "bad":
                return []
            return _facts(source_text, prompt_text, content_type=content_type)

        with patch(GENERATE, side_effect=generate) as gen:
            result = batch_generate("facts", 3, store, sleep=_Sleeps())

        assert [r.source_id for r in result.results] == [bad.id, good.id]
        assert (result.processed, result.failed) == (1, 1)
        assert result.success is False
        assert "1 failed" in result.message
        assert gen.call_count == 2

    def test_nothing_to_do(self, store, generator_prompts):
        result = batch_generate("facts", 2, store, sleep=_Sleeps())
        assert result.results == []
        assert result.success is True
        assert "stopped early" in result.message


class TestPaging:
    def test_scan_crosses_pages(self, store, add_source):
        for _ in range(5):
            add_source(used_for=["fact"])
        target = add_source()

        with patch.object(store, "list_sources", wraps=store.list_sources) as listing:
            found = find_next_unprocessed_source("facts", store, page_size=2)

        assert found.id == target.id
        assert [c.kwargs["offset"] for c in listing.call_args_list] == [0, 2, 4]

    def test_stops_at_first_matching_page(self, store, add_source):
        first = add_source()
        for _ in range(4):
            add_source()

        with patch.object(store, "list_sources", wraps=store.list_sources) as listing:
            found = find_next_unprocessed_source("facts", store, page_size=2)

        assert found.id == first.id
        assert listing.call_count == 1

    def test_batch_uses_configured_page_size(self, store, add_source, generator_prompts):
        add_source(content_text="only")
        config = AskaConfig.model_validate({"batch": {"page_size": 3, "delay_seconds": 0}})
        with (
            patch(GENERATE, side_effect=_facts),
            patch.object(store, "list_sources", wraps=store.list_sources) as listing,
        ):
            batch_generate("facts", 1, store, config=config, sleep=_Sleeps())
        assert all(c.kwargs.get("limit") == 3 for c in listing.call_args_list)
