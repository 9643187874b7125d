"""
Historical "on this day" events with map coordinates.

Each feed entry names the pages it relates to; the first page is the main
subject. An entry becomes a HistoricalEvent only if its year parses and one
of its first few pages has coordinates. Entries are normalized concurrently
and independently: one failing entry is dropped without affecting the rest.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Optional, Union

import httpx

from wikimap.cache import EventCache
from wikimap.models import HistoricalEvent, RawFeedEvent
from wikimap.wiki_client import CoordinateLookupService, EventFeedService

logger = logging.getLogger(__name__)

LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")
BRACKETED_RE = re.compile(r"\[.*?\]")

# A failed lookup of one page; the next related page is tried
LOOKUP_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError)
# A failed or unreadable day feed; nothing is cached
FEED_ERRORS = (httpx.HTTPError, ValueError, TypeError, AttributeError)

DEFAULT_JITTER_RADIUS = 0.05
DEFAULT_MAX_PAGE_ATTEMPTS = 3


def parse_year(value: Union[int, str, None]) -> Optional[int]:
    """Signed year from the feed's year field; '44 BC' -> -44."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value)
    match = LEADING_INT_RE.match(text)
    if match is None:
        return None
    year = int(match.group(1))
    if "BC" in text.upper():
        year = -abs(year)
    return year


def clean_text(text: Optional[str]) -> str:
    return BRACKETED_RE.sub("", text or "").strip()


def _is_null_island(coords: list[float]) -> bool:
    # (0, 0) is what the API reports for "location unknown"
    return coords[0] == 0 and coords[1] == 0


def apply_jitter(events: list[HistoricalEvent], radius: float = DEFAULT_JITTER_RADIUS) -> list[HistoricalEvent]:
    """Spread events sharing a location (4 decimals) evenly on a small circle.

    Single-occupant locations are left untouched. Coordinates are modified
    in place; the returned list is grouped by location.
    """
    groups: dict[tuple[float, float], list[HistoricalEvent]] = {}
    for ev in events:
        key = (round(ev.coordinates[0], 4), round(ev.coordinates[1], 4))
        groups.setdefault(key, []).append(ev)

    out: list[HistoricalEvent] = []
    for group in groups.values():
        n = len(group)
        if n > 1:
            for i, ev in enumerate(group):
                angle = 2 * math.pi * i / n
                ev.coordinates[0] += math.cos(angle) * radius
                ev.coordinates[1] += math.sin(angle) * radius
        out.extend(group)
    return out


def events_for_year(events: list[HistoricalEvent], year: int) -> list[HistoricalEvent]:
    """Events that happened in exactly this year (timeline position)."""
    return [e for e in events if e.year == year]


def validate_day(month: int, day: int) -> None:
    if not 1 <= int(month) <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    if not 1 <= int(day) <= 31:
        raise ValueError(f"day must be 1-31, got {day}")


class HistoricalEventService:
    def __init__(
        self,
        feed: EventFeedService,
        coordinates: CoordinateLookupService,
        cache: Optional[EventCache] = None,
        *,
        jitter_radius: float = DEFAULT_JITTER_RADIUS,
        max_page_attempts: int = DEFAULT_MAX_PAGE_ATTEMPTS,
        concurrency: int = 10,
    ) -> None:
        self.feed = feed
        self.coordinates = coordinates
        self.cache = cache if cache is not None else EventCache()
        self.jitter_radius = jitter_radius
        self.max_page_attempts = max_page_attempts
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def fetch_events(self, month: int, day: int) -> list[HistoricalEvent]:
        """Normalized events for a calendar day, memoized per (month, day).

        A feed failure returns [] and is not cached.
        """
        validate_day(month, day)
        month, day = int(month), int(day)
        events = await self.cache.get_or_compute((month, day), lambda: self._load_day(month, day))
        return [e.model_copy(deep=True) for e in events or []]

    async def _load_day(self, month: int, day: int) -> Optional[list[HistoricalEvent]]:
        try:
            raw_events = await self.feed.fetch_day_events(month, day)
        except FEED_ERRORS as e:
            logger.error("Error fetching events for %02d-%02d: %s", month, day, e)
            return None

        logger.info("Processing %d raw events for %02d-%02d...", len(raw_events), month, day)
        processed = await asyncio.gather(*(self._normalize_or_none(r) for r in raw_events))
        valid = [e for e in processed if e is not None]

        logger.info("Geocoding complete. Valid events: %d/%d", len(valid), len(raw_events))
        if not valid and raw_events:
            logger.warning("No event for %02d-%02d could be placed on the map", month, day)

        return apply_jitter(valid, self.jitter_radius)

    async def _normalize_or_none(self, raw: RawFeedEvent) -> Optional[HistoricalEvent]:
        try:
            return await self.normalize(raw)
        except Exception as e:
            logger.warning("Event processing error for %r: %s", raw.text[:60], e)
            return None

    async def normalize(self, raw: RawFeedEvent) -> Optional[HistoricalEvent]:
        """One feed entry -> HistoricalEvent, or None when it cannot be placed."""
        year = parse_year(raw.year)
        if year is None or not raw.pages:
            return None

        primary = raw.pages[0]
        coords = None
        for page in raw.pages[: self.max_page_attempts]:
            coords = await self._lookup(page.title)
            if coords is not None:
                break
        if coords is None:
            logger.debug("No coordinates for '%s'", primary.title)
            return None

        return HistoricalEvent(
            text=clean_text(raw.text),
            year=year,
            original_year=raw.year,
            pages=raw.pages,
            coordinates=list(coords),
            title=primary.title,
        )

    async def _lookup(self, title: str) -> Optional[list[float]]:
        if not title:
            return None
        async with self._semaphore:
            try:
                coords = await self.coordinates.lookup_coordinates(title)
            except LOOKUP_ERRORS as e:
                logger.debug("Coordinate lookup for '%s' failed: %s", title, e)
                return None
        if not coords or _is_null_island(coords):
            return None
        return coords
