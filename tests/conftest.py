"""Shared fixtures: a tmp-path content store with sources and prompts."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from aska.content.models import Prompt, SourceRecord, SuitabilityEntry, Theme
from aska.content.store import ContentStore
from aska.prompts import PromptType


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    return ContentStore(tmp_path)


@pytest.fixture
def add_source(store: ContentStore) -> Callable[..., SourceRecord]:
    """Insert a source with sensible defaults; keyword args override fields."""

    def _add(
        content_text: str = "Wayne Gretzky scored 92 goals in the 1981-82 season.",
        suitability: dict[str, tuple[bool, float]] | None = None,
        **kwargs: object,
    ) -> SourceRecord:
        analysis = None
        if suitability is not None:
            analysis = {
                key: SuitabilityEntry(suitable=ok, confidence=conf, reasoning="test")
                for key, (ok, conf) in suitability.items()
            }
        record = SourceRecord(
            content_text=content_text,
            theme=kwargs.pop("theme", Theme.PLAYERS),
            summary=kwargs.pop("summary", "A record season."),
            title=kwargs.pop("title", "The Great One"),
            suitability_analysis=analysis,
            **kwargs,  # type: ignore[arg-type]
        )
        return store.insert_source(record)

    return _add


@pytest.fixture
def add_prompt(store: ContentStore) -> Callable[..., Prompt]:
    def _add(prompt_type: PromptType | str, content: str = "Generate items as JSON.") -> Prompt:
        return store.upsert_prompt(
            Prompt(
                prompt_name=f"{prompt_type} prompt",
                prompt_type=str(prompt_type),
                prompt_content=content,
            )
        )

    return _add


@pytest.fixture
def generator_prompts(add_prompt: Callable[..., Prompt]) -> None:
    """Activate a prompt for every generator track."""
    for prompt_type in PromptType:
        if prompt_type.value.startswith("generator_"):
            add_prompt(prompt_type)
