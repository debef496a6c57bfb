"""
Shared data models for the Quote Journal service.

This module defines the core domain models used across multiple layers
of the application (business logic, CLI, API).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Quote(BaseModel):
    """A quote and its author. Identity is the text and author pair."""

    model_config = ConfigDict(frozen=True)

    quote: str = Field(..., description="The quote text")
    author: str = Field(..., description="The quote author")


class QuoteSource(str, Enum):
    """Which retrieval tier produced a quote."""

    ZEN_API = "zen-api"
    COLLECTION = "collection"
    FALLBACK_RATE_LIMITED = "fallback-rate-limited"
    FALLBACK_API_ERROR = "fallback-api-error"
    FALLBACK_ERROR = "fallback-error"


class CachedQuoteBatch(BaseModel):
    """The most recently fetched batch of quotes."""

    model_config = ConfigDict(frozen=True)

    quotes: tuple[Quote, ...] = Field(..., description="Quotes in fetch order")
    fetched_at: float = Field(..., description="Clock reading when fetched")


class JournalEntry(BaseModel):
    """A quote saved to the journal."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="Document identifier")
    quote: str = Field(..., description="The quote text")
    author: str = Field(..., description="The quote author")
    saved_at: datetime = Field(
        ..., alias="savedAt", description="When the entry was saved"
    )


class Mood(str, Enum):
    """The fixed mood vocabulary."""

    INSPIRATIONAL = "inspirational"
    MOTIVATIONAL = "motivational"
    PHILOSOPHICAL = "philosophical"
    HUMOROUS = "humorous"
    MELANCHOLIC = "melancholic"
    OPTIMISTIC = "optimistic"
    CONTEMPLATIVE = "contemplative"
    WISE = "wise"
    UPLIFTING = "uplifting"


class MoodResult(BaseModel):
    """The analyzed mood of a quote and the color that represents it."""

    model_config = ConfigDict(frozen=True)

    mood: Mood = Field(..., description="Mood label from the vocabulary")
    color: str = Field(
        ..., pattern=r"^#[0-9A-Fa-f]{6}$", description="Color as #RRGGBB"
    )


class Biography(BaseModel):
    """An author biography."""

    name: str = Field(..., description="Article title for the author")
    summary: str = Field(..., description="Cleaned introductory extract")
    url: str | None = Field(None, description="Link to the full article")
    thumbnail: str | None = Field(None, description="Portrait image URL")


class BiographyResult(BaseModel):
    """Outcome of a biography lookup; failures carry an error message."""

    success: bool
    data: Biography | None = None
    error: str | None = None

    @classmethod
    def found(cls, biography: Biography) -> "BiographyResult":
        return cls(success=True, data=biography)

    @classmethod
    def failure(cls, error: str) -> "BiographyResult":
        return cls(success=False, error=error)


class ThemePalette(BaseModel):
    """Colors derived from a single mood color."""

    primary: str
    secondary: str
    accent: str
    accent_hover: str
    background: str
    surface: str
    surface_elevated: str
    muted: str
    border: str
    shadow: str
    shadow_lg: str


class Theme(BaseModel):
    """Represents the current UI theme."""

    name: str = Field(..., description="Theme name")
    mood: Mood | None = Field(None, description="Mood the theme came from")
    color: str | None = Field(None, description="Base color as #RRGGBB")
    palette: ThemePalette | None = Field(None, description="Derived colors")
    timestamp: float | None = Field(
        None, description="Unix timestamp when the theme was set"
    )
