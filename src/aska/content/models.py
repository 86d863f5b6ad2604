"""Content domain models — pure Pydantic v2 data types.

A ``SourceRecord`` is one ingested unit of text plus its AI-derived
metadata.  Every generated item (wisdom, greetings, motivational quotes,
facts, and the three trivia formats) is a typed create-record that always
points back at the source it came from.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(tz=UTC)


class ContentStatus(StrEnum):
    """Lifecycle status of a generated item."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SourceStatus(StrEnum):
    """Lifecycle status of an ingested source."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class Theme(StrEnum):
    """The 13 standardized source themes."""

    PLAYERS = "Players"
    TEAMS = "Teams & Organizations"
    VENUES = "Venues & Locations"
    AWARDS = "Awards & Honors"
    LEADERSHIP = "Leadership & Staff"
    BUSINESS = "Business & Finance"
    MEDIA = "Media, Broadcasting, & E-Sports"
    MARKETING = "Marketing, Sponsorship, and Merchandising"
    EQUIPMENT = "Equipment & Technology"
    TRAINING = "Training, Health, & Wellness"
    FANDOM = "Fandom & Fan Culture"
    SOCIAL_IMPACT = "Social Impact & Diversity"
    TACTICS = "Tactics & Advanced Analytics"


CATEGORY_BY_THEME: dict[Theme, tuple[str, ...]] = {
    Theme.PLAYERS: (
        "Player Spotlight",
        "Sharpshooters",
        "Net Minders",
        "Icons",
        "Captains",
        "Hockey is Family",
        "Statistics & Records",
        "Career Achievements",
    ),
    Theme.TEAMS: (
        "Stanley Cup Playoffs",
        "NHL Draft",
        "Free Agency",
        "Game Day",
        "Hockey Nations",
        "All-Star Game",
        "Heritage Classic",
        "International Tournaments",
        "Olympics",
    ),
    Theme.VENUES: ("Stadium Series", "Global Series"),
    Theme.AWARDS: (
        "NHL Awards",
        "Milestones",
        "Historical Events",
        "Traditions",
        "Legacy Content",
    ),
    Theme.LEADERSHIP: ("Coaching", "Management", "Front Office"),
    Theme.BUSINESS: (
        "Contracts & Salaries",
        "Collective Bargaining",
        "Team Valuations",
        "Revenue Sharing",
        "Financial Operations",
    ),
    Theme.MEDIA: (
        "Broadcasting & TV",
        "Streaming Services",
        "Sports Journalism",
        "E-Sports",
        "Video Games",
    ),
    Theme.MARKETING: (
        "Sponsorships",
        "Endorsements",
        "Merchandise",
        "Advertising",
        "Brand Partnerships",
    ),
    Theme.EQUIPMENT: (
        "Equipment Design",
        "Technology Innovation",
        "Safety Technology",
        "Ice Maintenance",
        "Video Review Systems",
    ),
    Theme.TRAINING: (
        "Training Programs",
        "Nutrition",
        "Sports Psychology",
        "Injury Prevention",
        "Recovery & Rehabilitation",
        "Youth Leagues",
        "Development Programs",
        "Junior Hockey",
    ),
    Theme.FANDOM: (
        "Fan Traditions",
        "Community Events",
        "Watch Parties",
        "Rivalry Culture",
        "Fan Experiences",
    ),
    Theme.SOCIAL_IMPACT: (
        "Diversity & Inclusion",
        "Charitable Initiatives",
        "Community Outreach",
        "Environmental Impact",
        "Social Programs",
    ),
    Theme.TACTICS: (
        "Coaching Systems",
        "Tactical Analysis",
        "Advanced Metrics",
        "Strategy Breakdowns",
        "Performance Analysis",
        "Game Rules",
        "Penalties & Infractions",
        "Officiating",
    ),
}


class WisdomTheme(StrEnum):
    """Closed theme set for wisdom musings."""

    GRIND = "The Grind"
    ROOM = "The Room"
    CODE = "The Code"
    FLOW = "The Flow"
    STRIPES = "The Stripes"
    CHIRP = "The Chirp"


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class SuitabilityEntry(BaseModel):
    """AI assessment of one content type for one source."""

    suitable: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str


SuitabilityAnalysis = dict[str, SuitabilityEntry]


class SourceRecord(BaseModel):
    """One ingested unit of raw text plus its AI-derived metadata."""

    id: int = 0
    content_text: str
    theme: Theme
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    title: str = ""
    summary: str
    key_phrases: list[str] = Field(default_factory=list)
    suitability_analysis: SuitabilityAnalysis | None = None
    content_status: SourceStatus = SourceStatus.ACTIVE
    used_for: list[str] = Field(default_factory=list)
    word_count: int = 0
    char_count: int = 0
    ingestion_process_id: str = ""
    ingestion_status: str = "complete"
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Prompt(BaseModel):
    """A stored prompt template for one prompt type."""

    id: int = 0
    prompt_name: str
    prompt_type: str
    prompt_content: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Generated content create-records
# ---------------------------------------------------------------------------


class GeneratedRecord(BaseModel):
    """Fields every generated item carries."""

    status: ContentStatus = ContentStatus.DRAFT
    source_content_id: int


class WisdomCreate(GeneratedRecord):
    title: str
    musing: str
    from_the_box: str
    theme: WisdomTheme
    category: str | None = None
    attribution: str | None = None


class GreetingCreate(GeneratedRecord):
    greeting_text: str
    attribution: str | None = None


class MotivationalCreate(GeneratedRecord):
    quote: str
    theme: str | None = None
    category: str | None = None
    attribution: str | None = None


class FactCreate(GeneratedRecord):
    fact_text: str
    fact_value: str | None = None
    fact_category: str | None = None
    year: int | None = None
    theme: str | None = None
    category: str | None = None


class TriviaCreate(GeneratedRecord):
    """Shared trivia fields."""

    question_text: str
    explanation: str | None = None
    category: str | None = None
    theme: str | None = None
    difficulty: str | None = None
    tags: list[str] | None = None
    attribution: str | None = None


class MultipleChoiceCreate(TriviaCreate):
    correct_answer: str
    wrong_answers: list[str]


class TrueFalseCreate(TriviaCreate):
    is_true: bool


class WhoAmICreate(TriviaCreate):
    correct_answer: str
