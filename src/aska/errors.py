"""Error types shared across the pipeline.

LLM failures live in ``aska.llm`` next to the code that raises them.
"""

from __future__ import annotations


class AskaError(Exception):
    """Base error for the aska pipeline."""


class ConfigurationError(AskaError):
    """A required prompt or setting is missing."""


class SourceNotFoundError(AskaError):
    """The requested source does not exist or has no usable text."""


class StoreError(AskaError):
    """A store write or read failed."""


class MetadataValidationError(AskaError):
    """AI output failed validation.

    Carries the individual validation messages so callers can render them.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"AI output validation failed: {'; '.join(self.errors)}")
