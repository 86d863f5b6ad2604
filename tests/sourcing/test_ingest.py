"""Tests for ingest_source — pasted text to persisted source record."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from aska.config import AskaConfig
from aska.content.models import Theme
from aska.errors import StoreError
from aska.llm import LLMError, RateLimitError
from aska.prompts import PromptType
from aska.sourcing.ingest import ingest_source

_METADATA = {
    "theme": "players",
    "tags": ["goals"],
    "category": "Sharpshooters",
    "summary": "Record season.",
}
_ENRICHMENT = {"title": "Ninety-Two", "key_phrases": ["92 goals", "1981-82"]}
_SUITABILITY = {
    "facts": {"suitable": True, "confidence": 0.95, "reasoning": "stats"},
    "wisdom": {"suitable": False, "confidence": 0.2, "reasoning": "no story"},
}


def _responder(suitability: object = _SUITABILITY):
    """Fake call_llm that answers by the label each adapter passes."""

    def _call(prompt: str, **kwargs: object) -> str:
        label = kwargs["label"]
        if label == "metadata":
            return json.dumps(_METADATA)
        if label == "enrichment":
            return json.dumps(_ENRICHMENT)
        if isinstance(suitability, Exception):
            raise suitability
        return json.dumps(suitability)

    return _call


@pytest.fixture
def ingest_prompts(add_prompt) -> None:
    add_prompt(PromptType.METADATA_EXTRACTION, "Extract metadata.")
    add_prompt(PromptType.CONTENT_ENRICHMENT, "Enrich.")
    add_prompt(PromptType.CONTENT_SUITABILITY_ANALYSIS, "Judge suitability.")


class TestInputLimits:
    def test_empty_input(self, store):
        result = ingest_source("   ", store)
        assert result.ok is False
        assert result.error == "Please paste or type source content."

    def test_too_long(self, store):
        config = AskaConfig.model_validate({"ingest": {"max_input_chars": 10}})
        result = ingest_source("x" * 11, store, config=config)
        assert result.error == "Input is too long (11 chars). Limit is 10."

    def test_no_ai_call_for_rejected_input(self, store):
        with patch("aska.sourcing.adapters.call_llm") as call:
            ingest_source("", store)
        call.assert_not_called()


class TestIngestSource:
    def test_missing_prompts(self, store):
        result = ingest_source("Some hockey text.", store)
        assert result.ok is False
        assert "Active AI prompts are not configured" in result.error

    def test_success_persists_record(self, store, ingest_prompts):
        with patch("aska.sourcing.adapters.call_llm", side_effect=_responder()) as call:
            result = ingest_source("  Gretzky   scored 92 goals.  ", store)

        assert result.ok is True
        record = store.get_source(result.record_id)
        assert record.content_text == "Gretzky scored 92 goals."
        assert record.theme is Theme.PLAYERS
        assert record.title == "Ninety-Two"
        assert record.word_count == 4
        assert record.metadata == {"key_phrases": ["92 goals", "1981-82"]}
        assert record.ingestion_process_id
        assert set(record.suitability_analysis) == {"facts", "wisdom"}
        assert result.metadata.theme == "Players"

        first_prompt = call.call_args_list[0].args[0]
        assert first_prompt == "Extract metadata.\n\nSource Content:\nGretzky scored 92 goals."

    def test_title_override(self, store, ingest_prompts):
        with patch("aska.sourcing.adapters.call_llm", side_effect=_responder()):
            result = ingest_source("Text", store, title_override="Operator Title")
        assert store.get_source(result.record_id).title == "Operator Title"

    def test_suitability_failure_is_not_fatal(self, store, ingest_prompts):
        responder = _responder(RateLimitError("slow down"))
        with patch("aska.sourcing.adapters.call_llm", side_effect=responder):
            result = ingest_source("Text", store)
        assert result.ok is True
        assert store.get_source(result.record_id).suitability_analysis is None

    def test_invalid_suitability_is_not_fatal(self, store, ingest_prompts):
        bad = {"facts": {"suitable": "maybe", "confidence": 2, "reasoning": 1}}
        with patch("aska.sourcing.adapters.call_llm", side_effect=_responder(bad)):
            result = ingest_source("Text", store)
        assert result.ok is True
        assert result.metadata.suitability_analysis is None

    def test_missing_suitability_prompt_is_not_fatal(self, store, add_prompt):
        add_prompt(PromptType.METADATA_EXTRACTION)
        add_prompt(PromptType.CONTENT_ENRICHMENT)
        with patch("aska.sourcing.adapters.call_llm", side_effect=_responder()) as call:
            result = ingest_source("Text", store)
        assert result.ok is True
        assert call.call_count == 2

    def test_suitability_can_be_disabled(self, store, ingest_prompts):
        config = AskaConfig.model_validate({"ingest": {"run_suitability": False}})
        with patch("aska.sourcing.adapters.call_llm", side_effect=_responder()) as call:
            ingest_source("Text", store, config=config)
        assert call.call_count == 2

    def test_metadata_llm_error_aborts(self, store, ingest_prompts):
        with patch("aska.sourcing.adapters.call_llm", side_effect=LLMError("backend down")):
            result = ingest_source("Text", store)
        assert result.ok is False
        assert result.error == "backend down"
        assert store.list_sources() == []

    def test_invalid_metadata_aborts(self, store, ingest_prompts):
        with patch("aska.sourcing.adapters.call_llm", return_value='{"theme": "Nope"}'):
            result = ingest_source("Text", store)
        assert result.ok is False
        assert result.error.startswith("AI output validation failed")

    def test_store_failure(self, store, ingest_prompts):
        with (
            patch("aska.sourcing.adapters.call_llm", side_effect=_responder()),
            patch.object(store, "insert_source", side_effect=StoreError("disk full")),
        ):
            result = ingest_source("Text", store)
        assert result.ok is False
        assert result.error == "disk full"
