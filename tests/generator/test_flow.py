"""Tests for generate_for_track — the single-track generation flow."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from aska.content.store import FACTS_TABLE, MULTIPLE_CHOICE_TABLE, TRUE_FALSE_TABLE
from aska.errors import StoreError
from aska.generator.flow import ErrorType, TrackStatus, generate_for_track
from aska.generator.tracks import TrackKey
from aska.llm import LLMError, MalformedResponseError, RateLimitError
from aska.prompts import PromptType

GENERATE = "aska.generator.tracks.generate_items"


@pytest.fixture
def source(add_source, generator_prompts):
    return add_source()


class TestPreconditions:
    def test_already_used_is_skipped(self, store, add_source, generator_prompts):
        source = add_source(used_for=["fact"])
        with patch(GENERATE) as gen:
            result = generate_for_track(TrackKey.FACTS, source.id, store)
        assert result.status == TrackStatus.SKIPPED
        assert result.success is False
        assert result.error_type is None
        gen.assert_not_called()

    def test_missing_prompt(self, store, add_source):
        source = add_source()
        result = generate_for_track(TrackKey.FACTS, source.id, store)
        assert result.status == TrackStatus.FAILED
        assert result.message == "No active prompt configured for Facts."
        assert result.error_type == ErrorType.STRUCTURAL

    def test_missing_source(self, store, generator_prompts):
        result = generate_for_track("facts", 404, store)
        assert result.status == TrackStatus.FAILED
        assert "not found" in result.message

    def test_empty_source_text(self, store, add_source, generator_prompts):
        source = add_source(content_text="   ")
        with patch(GENERATE) as gen:
            result = generate_for_track("facts", source.id, store)
        assert "missing content_text" in result.message
        gen.assert_not_called()

    def test_unknown_track(self, store):
        result = generate_for_track("haiku", 1, store)
        assert result.status == TrackStatus.FAILED
        assert "not recognized" in result.message


class TestGeneratorCall:
    def test_prompt_and_instructions(self, store, add_source, add_prompt):
        add_prompt(PromptType.GENERATOR_FACTS, "Write facts.")
        source = add_source(content_text="Source body")
        with patch(GENERATE, return_value=[{"fact_text": "x"}]) as gen:
            generate_for_track(
                "facts", source.id, store, additional_instructions="  Keep it short. "
            )
        args = gen.call_args.args
        assert args == (
            "Source body",
            "Write facts.\n\nAdditional Instructions:\nKeep it short.",
        )
        assert gen.call_args.kwargs["content_type"] == "facts"

    def test_llm_error_surfaced_verbatim(self, store, source):
        with patch(GENERATE, side_effect=MalformedResponseError("bad envelope")):
            result = generate_for_track("facts", source.id, store)
        assert result.status == TrackStatus.FAILED
        assert result.message == "bad envelope"
        assert result.error_type == ErrorType.TECHNICAL
        assert result.retryable is False

    def test_rate_limit_is_retryable(self, store, source):
        with patch(GENERATE, side_effect=RateLimitError("try later")):
            result = generate_for_track("facts", source.id, store)
        assert result.retryable is True
        assert store.get_source(source.id).used_for == []

    def test_zero_items_is_logical_failure(self, store, source):
        with patch(GENERATE, return_value=[]):
            result = generate_for_track("facts", source.id, store)
        assert result.success is False
        assert result.error_type == ErrorType.LOGICAL
        assert result.message.startswith("No items generated")

    def test_generic_llm_error_is_technical(self, store, source):
        with patch(GENERATE, side_effect=LLMError("boom")):
            result = generate_for_track("facts", source.id, store)
        assert result.error_type == ErrorType.TECHNICAL


class TestNormalization:
    def test_partial_success(self, store, source):
        items = [
            {"question": "Q1", "answer": "A", "wrong_answers": ["B", "C", "D"]},
            {"question": "Q2", "answer": "A", "wrong_answers": ["B", "C"]},
            {"question": "Q3", "answer": "A", "wrong_answers": ["B", "C", "D", "E"]},
        ]
        with patch(GENERATE, return_value=items):
            result = generate_for_track(TrackKey.TRIVIA_MULTIPLE_CHOICE, source.id, store)

        assert result.status == TrackStatus.GENERATED
        assert result.item_count == 1
        assert (result.raw_count, result.normalized_count, result.rejected_count) == (3, 1, 2)
        assert result.message.startswith(
            "Successfully generated 1 item(s) for Trivia (Multiple Choice). Skipped 2 item(s)"
        )
        assert store.count_items(MULTIPLE_CHOICE_TABLE, source.id) == 1

    def test_true_false_stores_boolean(self, store, source):
        with patch(GENERATE, return_value=[{"question": "Q", "correct_answer": "T"}]):
            result = generate_for_track("trivia-true-false", source.id, store)
        assert result.success is True
        rows = store.list_items(TRUE_FALSE_TABLE, source_id=source.id)
        assert rows[0]["is_true"] is True
        assert rows[0]["status"] == "draft"
        assert result.items[0]["id"] == rows[0]["id"]

    def test_all_rejected_summary(self, store, source):
        items = [{"headline": "no fact here", "content_type": "facts"}, "not a dict"]
        with patch(GENERATE, return_value=items):
            result = generate_for_track("facts", source.id, store)

        assert result.status == TrackStatus.FAILED
        assert result.error_type == ErrorType.STRUCTURAL
        assert result.rejected_count == 2
        assert result.message.startswith("All 2 generated item(s) failed")
        assert "Expected fields: fact_text" in result.message
        assert "Received fields: headline, content_type" in result.message
        assert result.sample == items[0]
        assert store.count_items(FACTS_TABLE, source.id) == 0
        assert store.get_source(source.id).used_for == []

    def test_wisdom_bad_theme_rejected(self, store, source):
        item = {"musing": "m", "from_the_box": "f", "theme": "The Bench"}
        with patch(GENERATE, return_value=[item]):
            result = generate_for_track("wisdom", source.id, store)
        assert result.status == TrackStatus.FAILED
        assert result.rejected_count == 1


class TestPersistence:
    def test_success_marks_used(self, store, source):
        with patch(GENERATE, return_value=[{"fact_text": "a"}, {"fact": "b"}]):
            result = generate_for_track("facts", source.id, store)
        assert result.message == "Successfully generated 2 item(s) for Facts."
        assert store.get_source(source.id).used_for == ["fact"]

    def test_second_run_skips(self, store, source):
        with patch(GENERATE, return_value=[{"fact_text": "a"}]):
            generate_for_track("facts", source.id, store)
        with patch(GENERATE) as gen:
            result = generate_for_track("facts", source.id, store)
        assert result.status == TrackStatus.SKIPPED
        gen.assert_not_called()

    def test_insert_failure_does_not_mark(self, store, source):
        with (
            patch(GENERATE, return_value=[{"fact_text": "a"}]),
            patch.object(store, "insert_items", side_effect=StoreError("disk full")),
        ):
            result = generate_for_track("facts", source.id, store)
        assert result.status == TrackStatus.FAILED
        assert result.error_type == ErrorType.TECHNICAL
        assert "disk full" in result.message
        assert store.get_source(source.id).used_for == []

    def test_mark_failure_still_succeeds(self, store, source):
        with (
            patch(GENERATE, return_value=[{"fact_text": "a"}]),
            patch.object(store, "append_used_for", side_effect=StoreError("locked")),
        ):
            result = generate_for_track("facts", source.id, store)
        assert result.success is True
        assert store.count_items(FACTS_TABLE, source.id) == 1

    def test_result_serializes_success(self, store, source):
        with patch(GENERATE, return_value=[{"fact_text": "a"}]):
            result = generate_for_track("facts", source.id, store)
        assert result.model_dump()["success"] is True
