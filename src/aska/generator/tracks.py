"""Track registry — one entry per generated content type.

A track binds a content-type key to:
  - a generator call: (source_text, prompt_text) → raw items, or LLMError
  - a normalizer: (raw_item, source_id) → typed create-record, or None
  - an optional validator run after normalization
  - the table validated records are written to

Adding a content type means adding one ``TrackDefinition`` to ``TRACKS``;
the single-track flow and fan-out never branch on the key.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from aska.config import LLMSectionConfig
from aska.content.models import (
    ContentStatus,
    FactCreate,
    GreetingCreate,
    MotivationalCreate,
    MultipleChoiceCreate,
    TrueFalseCreate,
    WhoAmICreate,
    WisdomCreate,
    WisdomTheme,
)
from aska.content.store import (
    FACTS_TABLE,
    GREETINGS_TABLE,
    MOTIVATIONAL_TABLE,
    MULTIPLE_CHOICE_TABLE,
    TRUE_FALSE_TABLE,
    WHO_AM_I_TABLE,
    WISDOM_TABLE,
)
from aska.generator.coerce import (
    coerce_bool_from_text,
    coerce_int,
    coerce_scalar_text,
    coerce_string,
    coerce_string_list,
    first_alias,
)
from aska.llm import generate_items
from aska.prompts import PromptType



class TrackKey(StrEnum):
    WISDOM = "wisdom"
    GREETINGS = "greetings"
    MOTIVATIONAL = "motivational"
    FACTS = "facts"
    TRIVIA_MULTIPLE_CHOICE = "trivia_multiple_choice"
    TRIVIA_TRUE_FALSE = "trivia_true_false"
    TRIVIA_WHO_AM_I = "trivia_who_am_i"


Generator = Callable[..., list[dict[str, Any]]]
Normalizer = Callable[[Mapping[str, Any], int], BaseModel | None]
Validator = Callable[[BaseModel], list[str]]


@dataclass(frozen=True)
class TrackDefinition:
    """Everything the generation flow needs to know about one content type."""

    key: TrackKey
    label: str
    short_label: str
    description: str
    prompt_type: PromptType
    target_table: str
    usage_key: str
    expected_fields: tuple[str, ...]
    generate: Generator
    normalize: Normalizer
    validate: Validator | None = None
    default_status: ContentStatus = ContentStatus.DRAFT


# ---------------------------------------------------------------------------
# Field aliases
# ---------------------------------------------------------------------------

# Ordered alias lists per logical field; the first non-empty match wins.
FIELD_ALIASES: dict[TrackKey, dict[str, tuple[str, ...]]] = {
    TrackKey.WISDOM: {
        "title": ("title", "content_title", "heading"),
        "musing": ("musing", "musings", "body", "content_text"),
        "from_the_box": ("from_the_box", "pull_quote", "highlight", "quote", "fromTheBox"),
        "theme": ("theme", "category"),
    },
    TrackKey.GREETINGS: {
        "greeting_text": ("greeting_text", "content_text", "message", "text", "copy"),
    },
    TrackKey.MOTIVATIONAL: {
        "quote": ("quote", "content_text", "musing", "text", "content"),
        "attribution": ("author", "attribution"),
    },
    TrackKey.FACTS: {
        "fact_text": ("fact_text", "content_text", "fact", "statement", "summary"),
        "fact_value": ("fact_value", "value"),
        "fact_category": ("fact_category", "category"),
        "year": ("year", "season", "fact_year"),
    },
    TrackKey.TRIVIA_MULTIPLE_CHOICE: {
        "question_text": ("question_text", "question"),
        "correct_answer": ("correct_answer", "answer"),
        "wrong_answers": ("wrong_answers", "incorrect_answers", "distractors"),
    },
    TrackKey.TRIVIA_TRUE_FALSE: {
        "question_text": ("question_text", "question", "statement"),
        "correct_answer": ("correct_answer", "is_true", "answer"),
    },
    TrackKey.TRIVIA_WHO_AM_I: {
        "question_text": ("question_text", "question", "clues"),
        "correct_answer": ("correct_answer", "answer"),
    },
}

DEFAULT_WISDOM_TITLE = "Untitled wisdom"
_WISDOM_THEMES = frozenset(t.value for t in WisdomTheme)


def _aliases(track: TrackKey, field: str) -> tuple[str, ...]:
    return FIELD_ALIASES[track][field]


def _optional(item: Mapping[str, Any], name: str) -> str | None:
    return coerce_string(item.get(name))


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------


def normalize_wisdom(item: Mapping[str, Any], source_id: int) -> WisdomCreate | None:
    musing = first_alias(item, _aliases(TrackKey.WISDOM, "musing"))
    from_the_box = first_alias(item, _aliases(TrackKey.WISDOM, "from_the_box"))
    if not musing or not from_the_box:
        return None

    theme_raw = first_alias(item, _aliases(TrackKey.WISDOM, "theme"))
    if theme_raw not in _WISDOM_THEMES:
        return None

    # "category" doubles as a theme alias; keep it only when it says something else
    category = _optional(item, "category")
    if category == theme_raw:
        category = None

    return WisdomCreate(
        title=first_alias(item, _aliases(TrackKey.WISDOM, "title")) or DEFAULT_WISDOM_TITLE,
        musing=musing,
        from_the_box=from_the_box,
        theme=WisdomTheme(theme_raw),
        category=category,
        attribution=_optional(item, "attribution"),
        source_content_id=source_id,
    )


def normalize_greeting(item: Mapping[str, Any], source_id: int) -> GreetingCreate | None:
    message = first_alias(item, _aliases(TrackKey.GREETINGS, "greeting_text"))
    if not message:
        return None
    return GreetingCreate(
        greeting_text=message,
        attribution=_optional(item, "attribution"),
        source_content_id=source_id,
    )


def normalize_motivational(item: Mapping[str, Any], source_id: int) -> MotivationalCreate | None:
    quote = first_alias(item, _aliases(TrackKey.MOTIVATIONAL, "quote"))
    if not quote:
        return None
    return MotivationalCreate(
        quote=quote,
        theme=_optional(item, "theme"),
        category=_optional(item, "category"),
        attribution=first_alias(item, _aliases(TrackKey.MOTIVATIONAL, "attribution")),
        source_content_id=source_id,
    )


def normalize_fact(item: Mapping[str, Any], source_id: int) -> FactCreate | None:
    fact_text = first_alias(item, _aliases(TrackKey.FACTS, "fact_text"))
    if not fact_text:
        return None
    return FactCreate(
        fact_text=fact_text,
        fact_value=first_alias(item, _aliases(TrackKey.FACTS, "fact_value")),
        fact_category=first_alias(item, _aliases(TrackKey.FACTS, "fact_category")),
        year=first_alias(item, _aliases(TrackKey.FACTS, "year"), coerce_int),
        theme=_optional(item, "theme"),
        category=_optional(item, "category"),
        source_content_id=source_id,
    )


def _trivia_extras(item: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "explanation": _optional(item, "explanation"),
        "category": _optional(item, "category"),
        "theme": _optional(item, "theme"),
        "difficulty": coerce_scalar_text(item.get("difficulty")),
        "tags": coerce_string_list(item.get("tags")),
        "attribution": _optional(item, "attribution"),
    }


def _wrong_answers(item: Mapping[str, Any]) -> list[str]:
    for name in _aliases(TrackKey.TRIVIA_MULTIPLE_CHOICE, "wrong_answers"):
        value = item.get(name)
        if isinstance(value, list):
            return [answer for answer in (coerce_string(v) for v in value) if answer]
    return []


def normalize_multiple_choice(
    item: Mapping[str, Any], source_id: int
) -> MultipleChoiceCreate | None:
    question = first_alias(item, _aliases(TrackKey.TRIVIA_MULTIPLE_CHOICE, "question_text"))
    correct = first_alias(item, _aliases(TrackKey.TRIVIA_MULTIPLE_CHOICE, "correct_answer"))
    wrong = _wrong_answers(item)
    if not question or not correct or len(wrong) != 3:
        return None

    record = MultipleChoiceCreate(
        question_text=question,
        correct_answer=correct,
        wrong_answers=wrong,
        source_content_id=source_id,
        **_trivia_extras(item),
    )
    if validate_multiple_choice(record):
        return None
    return record


def normalize_true_false(item: Mapping[str, Any], source_id: int) -> TrueFalseCreate | None:
    question = first_alias(item, _aliases(TrackKey.TRIVIA_TRUE_FALSE, "question_text"))
    is_true = first_alias(
        item, _aliases(TrackKey.TRIVIA_TRUE_FALSE, "correct_answer"), coerce_bool_from_text
    )
    if not question or is_true is None:
        return None
    return TrueFalseCreate(
        question_text=question,
        is_true=is_true,
        source_content_id=source_id,
        **_trivia_extras(item),
    )


def normalize_who_am_i(item: Mapping[str, Any], source_id: int) -> WhoAmICreate | None:
    question = first_alias(item, _aliases(TrackKey.TRIVIA_WHO_AM_I, "question_text"))
    correct = first_alias(item, _aliases(TrackKey.TRIVIA_WHO_AM_I, "correct_answer"))
    if not question or not correct:
        return None
    return WhoAmICreate(
        question_text=question,
        correct_answer=correct,
        source_content_id=source_id,
        **_trivia_extras(item),
    )


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def _require(record: BaseModel, *fields: str) -> list[str]:
    errors = []
    for name in fields:
        value = getattr(record, name, None)
        if not (isinstance(value, str) and value.strip()):
            errors.append(f"{name} is required")
    return errors


def validate_wisdom(record: BaseModel) -> list[str]:
    return _require(record, "title", "musing", "from_the_box")


def validate_greeting(record: BaseModel) -> list[str]:
    return _require(record, "greeting_text")


def validate_motivational(record: BaseModel) -> list[str]:
    return _require(record, "quote")


def validate_fact(record: BaseModel) -> list[str]:
    return _require(record, "fact_text")


def validate_multiple_choice(record: BaseModel) -> list[str]:
    """Question, correct answer, and exactly three distinct wrong answers."""
    errors = _require(record, "question_text", "correct_answer")
    wrong = [w.strip() for w in getattr(record, "wrong_answers", None) or []]

    if len(wrong) != 3:
        errors.append(f"wrong_answers must contain exactly 3 answers (got {len(wrong)})")
    if any(not w for w in wrong):
        errors.append("wrong_answers must not contain empty answers")

    lowered = [w.lower() for w in wrong if w]
    if len(set(lowered)) != len(lowered):
        errors.append("wrong_answers must be distinct")

    correct = (getattr(record, "correct_answer", "") or "").strip().lower()
    if correct and correct in lowered:
        errors.append("correct_answer must not appear in wrong_answers")
    return errors


def validate_true_false(record: BaseModel) -> list[str]:
    errors = _require(record, "question_text")
    if not isinstance(getattr(record, "is_true", None), bool):
        errors.append("is_true must be a boolean")
    return errors


def validate_who_am_i(record: BaseModel) -> list[str]:
    return _require(record, "question_text", "correct_answer")


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def _llm_generator(content_type: str) -> Generator:
    """Build the generator call for one content type."""

    def run(
        source_text: str, prompt_text: str, *, llm: LLMSectionConfig | None = None
    ) -> list[dict[str, Any]]:
        settings = llm or LLMSectionConfig()
        return generate_items(
            source_text,
            prompt_text,
            content_type=content_type,
            model=settings.model,
            timeout=settings.timeout,
            use_cli=settings.use_cli,
        )

    run.__name__ = f"generate_{content_type}"
    return run


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

TRACKS: dict[TrackKey, TrackDefinition] = {
    TrackKey.WISDOM: TrackDefinition(
        key=TrackKey.WISDOM,
        label="Wisdom",
        short_label="Wisdom",
        description="Penalty Box Philosopher musings ready for shareable storytelling.",
        prompt_type=PromptType.GENERATOR_WISDOM,
        target_table=WISDOM_TABLE,
        usage_key="wisdom",
        expected_fields=("title", "musing", "from_the_box", "theme"),
        generate=_llm_generator("wisdom"),
        normalize=normalize_wisdom,
        validate=validate_wisdom,
    ),
    TrackKey.GREETINGS: TrackDefinition(
        key=TrackKey.GREETINGS,
        label="Greetings",
        short_label="H.U.G.s",
        description="Supportive Hockey Universal Greetings for the community.",
        prompt_type=PromptType.GENERATOR_GREETINGS,
        target_table=GREETINGS_TABLE,
        usage_key="greeting",
        expected_fields=("greeting_text",),
        generate=_llm_generator("greetings"),
        normalize=normalize_greeting,
        validate=validate_greeting,
    ),
    TrackKey.MOTIVATIONAL: TrackDefinition(
        key=TrackKey.MOTIVATIONAL,
        label="Motivational",
        short_label="Motivation",
        description="Locker room ready motivation with quick share appeal.",
        prompt_type=PromptType.GENERATOR_MOTIVATIONAL,
        target_table=MOTIVATIONAL_TABLE,
        usage_key="motivational",
        expected_fields=("quote",),
        generate=_llm_generator("motivational"),
        normalize=normalize_motivational,
        validate=validate_motivational,
    ),
    TrackKey.FACTS: TrackDefinition(
        key=TrackKey.FACTS,
        label="Facts",
        short_label="Facts",
        description="Snackable fact nuggets anchored in authentic hockey data.",
        prompt_type=PromptType.GENERATOR_FACTS,
        target_table=FACTS_TABLE,
        usage_key="fact",
        expected_fields=("fact_text",),
        generate=_llm_generator("facts"),
        normalize=normalize_fact,
        validate=validate_fact,
    ),
    TrackKey.TRIVIA_MULTIPLE_CHOICE: TrackDefinition(
        key=TrackKey.TRIVIA_MULTIPLE_CHOICE,
        label="Trivia (Multiple Choice)",
        short_label="Trivia MCQ",
        description="Four-option trivia with explanation and difficulty cues.",
        prompt_type=PromptType.GENERATOR_TRIVIA_MULTIPLE_CHOICE,
        target_table=MULTIPLE_CHOICE_TABLE,
        usage_key="multiple-choice",
        expected_fields=("question_text", "correct_answer", "wrong_answers"),
        generate=_llm_generator("trivia_multiple_choice"),
        normalize=normalize_multiple_choice,
        validate=validate_multiple_choice,
    ),
    TrackKey.TRIVIA_TRUE_FALSE: TrackDefinition(
        key=TrackKey.TRIVIA_TRUE_FALSE,
        label="Trivia (True / False)",
        short_label="Trivia T/F",
        description="Quick hit true or false questions with optional context.",
        prompt_type=PromptType.GENERATOR_TRIVIA_TRUE_FALSE,
        target_table=TRUE_FALSE_TABLE,
        usage_key="true-false",
        expected_fields=("question_text", "correct_answer"),
        generate=_llm_generator("trivia_true_false"),
        normalize=normalize_true_false,
        validate=validate_true_false,
    ),
    TrackKey.TRIVIA_WHO_AM_I: TrackDefinition(
        key=TrackKey.TRIVIA_WHO_AM_I,
        label="Trivia (Who Am I?)",
        short_label="Trivia Who Am I",
        description="Riddle-style reveals for player or team identities.",
        prompt_type=PromptType.GENERATOR_TRIVIA_WHO_AM_I,
        target_table=WHO_AM_I_TABLE,
        usage_key="who-am-i",
        expected_fields=("question_text", "correct_answer"),
        generate=_llm_generator("trivia_who_am_i"),
        normalize=normalize_who_am_i,
        validate=validate_who_am_i,
    ),
}


def coerce_track_key(candidate: str | None) -> TrackKey | None:
    """Resolve "Trivia-True-False" style input to a TrackKey, or None."""
    if not candidate:
        return None
    normalized = candidate.strip().lower().replace("-", "_")
    try:
        return TrackKey(normalized)
    except ValueError:
        return None


def get_track(key: TrackKey | str) -> TrackDefinition | None:
    track_key = key if isinstance(key, TrackKey) else coerce_track_key(key)
    if track_key is None:
        return None
    return TRACKS.get(track_key)


def require_track(track: TrackDefinition | TrackKey | str) -> TrackDefinition:
    """Like get_track, but accepts a definition and raises ValueError when unknown."""
    if isinstance(track, TrackDefinition):
        return track
    definition = get_track(track)
    if definition is None:
        raise ValueError(f"Unknown track: {track}")
    return definition
