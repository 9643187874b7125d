"""
Shared fixtures: an in-memory stand-in for the Wikipedia services.
"""

from __future__ import annotations

import asyncio
import os

# Config defaults are read at import time
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import httpx
import pytest

from wikimap.models import CanonicalSummary, LeadMarkup, RawFeedEvent

CITY_MARKUP = """{{Short description|Capital city of Illinois}}
{{Infobox settlement
| name                    = Springfield
| settlement_type         = [[City (Illinois)|City]]
| population_total        = {{nowrap|114,394}}<ref name="Census2020">{{cite web|title=Census}}</ref>
| population_as_of        = [[2020 United States census|2020]]
| area_total_km2          = {{convert|170.6|km2|sqmi}}
| elevation_m             = 182
| established_title       = Founded
| established_date        = 1821
| timezone                = [[Central Time Zone|CST]] ([[UTC−06:00|UTC−6]])
| leader_name             = [[Misty Buscher]]
}}
'''Springfield''' is the [[capital city]] of [[Illinois]].
"""

DISAMBIGUATION_MARKUP = """'''Springfield''' may refer to:
* [[Springfield, Illinois]]
* [[Springfield, Massachusetts]]
{{geodis}}
"""

FILM_MARKUP = """{{Infobox film
| name = Springfield
| director = Someone
}}
'''Springfield''' is a 2004 film.
"""


class FakeWikipedia:
    """Article, coordinate and event-feed lookups served from dicts.

    Every call is recorded in `calls` as (method, argument) and yields to
    the event loop once, like a real request would.
    """

    def __init__(self) -> None:
        self.pages: dict[str, dict] = {}
        self.aliases: dict[str, str] = {}
        self.coordinates: dict[str, list[float]] = {}
        self.day_events: dict[tuple[int, int], list[RawFeedEvent]] = {}
        self.failing: set[str] = set()
        self.feed_error = False
        self.calls: list[tuple[str, object]] = []

    def add_page(self, title, markup, extract=None, image=None, aliases=()):
        self.pages[title.lower()] = {"title": title, "markup": markup, "extract": extract, "image": image}
        for alias in aliases:
            self.aliases[alias.lower()] = title
        return self

    def count(self, method: str, arg=None) -> int:
        return sum(1 for m, a in self.calls if m == method and (arg is None or a == arg))

    def _page(self, title: str):
        key = title.lower()
        if key in self.aliases:
            key = self.aliases[key].lower()
        return self.pages.get(key)

    async def query_canonical_summary(self, title: str) -> CanonicalSummary:
        self.calls.append(("summary", title))
        await asyncio.sleep(0)
        if title in self.failing:
            raise httpx.ConnectError(f"connection refused for {title}")
        page = self._page(title)
        if page is None:
            return CanonicalSummary(found=False)
        return CanonicalSummary(
            found=True, resolved_title=page["title"], extract=page["extract"], image_url=page["image"]
        )

    async def fetch_lead_markup(self, title: str) -> LeadMarkup:
        self.calls.append(("markup", title))
        await asyncio.sleep(0)
        page = self._page(title)
        if page is None or page["markup"] is None:
            return LeadMarkup(found=False)
        return LeadMarkup(found=True, resolved_title=page["title"], markup=page["markup"])

    async def lookup_coordinates(self, title: str):
        self.calls.append(("coords", title))
        await asyncio.sleep(0)
        if title in self.failing:
            raise httpx.ConnectError(f"connection refused for {title}")
        coords = self.coordinates.get(title)
        return list(coords) if coords is not None else None

    async def fetch_day_events(self, month: int, day: int) -> list[RawFeedEvent]:
        self.calls.append(("feed", (month, day)))
        await asyncio.sleep(0)
        if self.feed_error:
            raise httpx.ConnectError("feed unavailable")
        return [e.model_copy(deep=True) for e in self.day_events.get((month, day), [])]


@pytest.fixture
def fake_wiki() -> FakeWikipedia:
    return FakeWikipedia()


@pytest.fixture
def springfield_wiki(fake_wiki: FakeWikipedia) -> FakeWikipedia:
    fake_wiki.add_page("Springfield", DISAMBIGUATION_MARKUP, extract="Springfield may refer to:")
    fake_wiki.add_page(
        "Springfield, Illinois",
        CITY_MARKUP,
        extract="Springfield is the capital city of the U.S. state of Illinois.",
        image="https://upload.wikimedia.org/springfield.jpg",
        aliases=["Springfield, Illinois, United States"],
    )
    fake_wiki.add_page("Springfield (film)", FILM_MARKUP, extract="Springfield is a 2004 film.")
    return fake_wiki


@pytest.fixture
def city_markup() -> str:
    return CITY_MARKUP
