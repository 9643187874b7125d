"""
Pydantic models shared by the resolver, the event service and the API.
None of them talk to the network.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────────────────

class Category(str, Enum):
    """Geometric/administrative category of a clicked map feature."""
    COUNTRY = "country"
    CITY = "city"
    RIVER = "river"
    LAKE = "lake"
    SEA = "sea"
    STRAIT = "strait"
    DEFAULT = "default"

    @classmethod
    def from_layer(cls, layer_id: Optional[str]) -> "Category":
        """Map a map-layer id such as 'city-hit' or 'rivers' onto a category."""
        lid = str(layer_id or "").lower()
        for cat, needles in _LAYER_NEEDLES:
            if any(n in lid for n in needles):
                return cls(cat)
        return cls.DEFAULT

    @classmethod
    def parse(cls, value: Union["Category", str, None]) -> "Category":
        """Accept a Category or its string value; None means DEFAULT."""
        if value is None or value == "":
            return cls.DEFAULT
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown category: {value!r}") from None

    @property
    def type_word(self) -> str:
        """'City', 'River', ... or '' for the default category."""
        return "" if self is Category.DEFAULT else self.value.title()


# Layer id substrings, checked in order
_LAYER_NEEDLES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("country", ("country", "countries")),
    ("city", ("city", "cities")),
    ("river", ("river",)),
    ("lake", ("lake",)),
    ("sea", ("sea",)),
    ("strait", ("strait",)),
)


# ── Enrichment output ─────────────────────────────────────────────────

class Stat(BaseModel):
    """One statistic card shown next to a feature."""
    icon: str
    label: str
    value: str

    model_config = {"frozen": True}


class WikiResult(BaseModel):
    """Outcome of resolving a map feature to an encyclopedia article."""
    found: bool = False
    wiki_title: Optional[str] = Field(None, alias="wikiTitle")
    extract: Optional[str] = None
    image: Optional[str] = None
    stats: list[Stat] = Field(default_factory=list)

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def not_found(cls) -> "WikiResult":
        return cls(found=False, wiki_title=None, extract=None, image=None, stats=[])


class EntityCard(BaseModel):
    """Everything the sidebar needs to present one feature or event."""
    title: str
    description: str
    image_url: Optional[str] = None
    stats: list[Stat] = Field(default_factory=list)
    wiki_title: Optional[str] = None
    wiki_url: Optional[str] = None


# ── External service payloads ─────────────────────────────────────────

class CanonicalSummary(BaseModel):
    found: bool = False
    resolved_title: Optional[str] = None
    extract: Optional[str] = None
    image_url: Optional[str] = None

    model_config = {"frozen": True}


class LeadMarkup(BaseModel):
    found: bool = False
    resolved_title: Optional[str] = None
    markup: Optional[str] = None

    model_config = {"frozen": True}


class FeedPage(BaseModel):
    """A related page attached to an on-this-day feed entry."""
    title: str
    normalizedtitle: Optional[str] = None
    thumbnail: Optional[dict] = None
    original: Optional[dict] = None

    model_config = {"extra": "allow"}

    @property
    def display_title(self) -> str:
        return self.normalizedtitle or self.title.replace("_", " ")

    @property
    def image_url(self) -> Optional[str]:
        for img in (self.thumbnail, self.original):
            if img and img.get("source"):
                return img["source"]
        return None


class RawFeedEvent(BaseModel):
    """One entry of the on-this-day events feed as returned by the API."""
    year: Optional[Union[int, str]] = None
    text: str = ""
    pages: list[FeedPage] = Field(default_factory=list)

    model_config = {"extra": "allow"}


# ── Historical events ─────────────────────────────────────────────────

class HistoricalEvent(BaseModel):
    text: str
    year: int = Field(..., description="Signed year, negative for BC")
    original_year: Union[int, str] = Field(..., alias="originalYear")
    pages: list[FeedPage] = Field(default_factory=list)
    coordinates: list[float] = Field(..., min_length=2, max_length=2, description="[lng, lat]")
    title: str

    model_config = {"populate_by_name": True}

    @property
    def display_year(self) -> str:
        from wikimap.timeline import format_year

        return format_year(self.year)

    @property
    def image_url(self) -> Optional[str]:
        return self.pages[0].image_url if self.pages else None

    def to_card(self, wiki_url: Optional[str] = None) -> EntityCard:
        stats = [Stat(icon="📅", label="Year", value=str(self.year))] if self.year else []
        return EntityCard(
            title=f"{self.display_year}: {self.title.replace('_', ' ')}",
            description=self.text,
            image_url=self.image_url,
            stats=stats,
            wiki_title=self.title,
            wiki_url=wiki_url,
        )


# ── API response models ───────────────────────────────────────────────

class EntityResponse(BaseModel):
    name: str
    category: Category
    found: bool
    card: EntityCard


class CandidatesResponse(BaseModel):
    name: str
    category: Category
    candidates: list[str]


class EventsResponse(BaseModel):
    month: int
    day: int
    year: Optional[int] = None
    total: int
    events: list[HistoricalEvent]


class HealthResponse(BaseModel):
    status: str = "ok"
    wiki_cache_entries: int = 0
    event_days_cached: int = 0
