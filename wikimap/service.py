"""
Enrichment session: the facade the map front-end talks to.

A session owns the Wikipedia client and both memo caches. Its lifetime is
the application session (API process lifespan, one CLI invocation); on
close the caches are dropped and an owned HTTP client is shut down.
"""

from __future__ import annotations

import logging
from functools import cached_property
from typing import Optional

from wikimap.cache import EventCache, WikiCache
from wikimap.config import Settings, get_settings
from wikimap.events import HistoricalEventService, events_for_year
from wikimap.models import Category, EntityCard, HistoricalEvent, Stat, WikiResult
from wikimap.properties import context_from_properties
from wikimap.resolver import EntityResolver
from wikimap.timeline import Empire, load_empires
from wikimap.titles import build_title_candidates
from wikimap.wiki_client import WikipediaClient, page_url
from wikimap.wikitext.fields import get_fallback_stats, is_informative

logger = logging.getLogger(__name__)

NO_SUMMARY = "No summary available."
DISCOVERY_STAT = Stat(icon="ℹ️", label="Information", value="Discovery in progress.")


class EnrichmentSession:
    def __init__(self, client=None, settings: Optional[Settings] = None) -> None:
        """client must implement the article, coordinate and event-feed
        lookups (WikipediaClient does); one is created when omitted."""
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self.client = client if client is not None else WikipediaClient(self.settings.wikipedia)

        self.wiki_cache = WikiCache()
        self.event_cache = EventCache()
        self.resolver = EntityResolver(
            self.client, self.wiki_cache, max_stats=self.settings.enrichment.max_stats
        )
        self.events = HistoricalEventService(
            self.client,
            self.client,
            self.event_cache,
            jitter_radius=self.settings.events.jitter_radius,
            max_page_attempts=self.settings.events.max_page_attempts,
            concurrency=self.settings.events.concurrency,
        )

    async def __aenter__(self) -> "EnrichmentSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        self.wiki_cache.clear()
        self.event_cache.clear()
        if self._owns_client:
            await self.client.aclose()
        logger.info("Enrichment session closed")

    # ── Features ─────────────────────────────────────────────────────

    def title_candidates(
        self, feature_name: str, category: Category | str, properties: Optional[dict] = None
    ) -> list[str]:
        return build_title_candidates(feature_name, category, context_from_properties(properties))

    async def resolve_entity(
        self, feature_name: str, category: Category | str, properties: Optional[dict] = None
    ) -> WikiResult:
        category = Category.parse(category)
        candidates = self.title_candidates(feature_name, category, properties)
        logger.debug("Resolving '%s' (%s) over %d candidates", feature_name, category.value, len(candidates))
        return await self.resolver.resolve(feature_name, candidates, category)

    def get_fallback_stats(
        self, properties: Optional[dict], category: Category | str, max_stats: Optional[int] = None
    ) -> list[Stat]:
        if max_stats is None:
            max_stats = self.settings.enrichment.fallback_max_stats
        return get_fallback_stats(properties, Category.parse(category), max_stats)

    async def build_entity_card(
        self, feature_name: str, category: Category | str, properties: Optional[dict] = None
    ) -> tuple[WikiResult, EntityCard]:
        """Sidebar card: article data when found, feature properties otherwise."""
        category = Category.parse(category)
        wiki = await self.resolve_entity(feature_name, category, properties)

        stats = wiki.stats[: self.settings.enrichment.max_stats]
        if not stats:
            fallback = self.get_fallback_stats(properties, category)
            stats = fallback if is_informative(fallback) else [DISCOVERY_STAT]

        wiki_title = wiki.wiki_title or feature_name
        card = EntityCard(
            title=feature_name,
            description=wiki.extract or NO_SUMMARY,
            image_url=wiki.image,
            stats=stats,
            wiki_title=wiki_title,
            wiki_url=page_url(wiki_title, self.settings.wikipedia.page_url),
        )
        return wiki, card

    # ── Historical events ────────────────────────────────────────────

    async def fetch_events(self, month: int, day: int) -> list[HistoricalEvent]:
        return await self.events.fetch_events(month, day)

    async def events_for_year(self, month: int, day: int, year: int) -> list[HistoricalEvent]:
        return events_for_year(await self.fetch_events(month, day), year)

    def event_card(self, event: HistoricalEvent) -> EntityCard:
        return event.to_card(page_url(event.title, self.settings.wikipedia.page_url))

    # ── Timeline ─────────────────────────────────────────────────────

    @cached_property
    def empires(self) -> list[Empire]:
        path = self.settings.timeline.empires_file
        if not path:
            return []
        empires = load_empires(path)
        logger.info("Loaded %d empires from %s", len(empires), path)
        return empires
