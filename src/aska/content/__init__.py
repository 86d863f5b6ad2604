"""Content domain — source and generated-item models plus the JSON store."""

from aska.content.models import (
    CATEGORY_BY_THEME,
    ContentStatus,
    FactCreate,
    GreetingCreate,
    MotivationalCreate,
    MultipleChoiceCreate,
    Prompt,
    SourceRecord,
    SourceStatus,
    SuitabilityAnalysis,
    SuitabilityEntry,
    Theme,
    TrueFalseCreate,
    WhoAmICreate,
    WisdomCreate,
    WisdomTheme,
)
from aska.content.store import ITEM_TABLES, ContentStore

__all__ = [
    "CATEGORY_BY_THEME",
    "ContentStatus",
    "ContentStore",
    "FactCreate",
    "GreetingCreate",
    "ITEM_TABLES",
    "MotivationalCreate",
    "MultipleChoiceCreate",
    "Prompt",
    "SourceRecord",
    "SourceStatus",
    "SuitabilityAnalysis",
    "SuitabilityEntry",
    "Theme",
    "TrueFalseCreate",
    "WhoAmICreate",
    "WisdomCreate",
    "WisdomTheme",
]
