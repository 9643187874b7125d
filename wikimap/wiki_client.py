"""
Async client for the Wikipedia Action API and REST feed.

Implements the three lookup services the enrichment core depends on:
  - article lookup: canonical title + plain-text summary + lead image,
    and the lead-section wikitext of a page
  - coordinate lookup for a page title
  - the "on this day" events feed

Transport failures surface as httpx.HTTPError; callers decide whether a
failure means "try the next candidate" or "drop this entry". Only HTTP 429
is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from wikimap.config import WikipediaConfig, get_settings
from wikimap.models import CanonicalSummary, LeadMarkup, RawFeedEvent

logger = logging.getLogger(__name__)


# ── Service contracts ─────────────────────────────────────────────────

class ArticleLookupService(Protocol):
    async def query_canonical_summary(self, title: str) -> CanonicalSummary: ...

    async def fetch_lead_markup(self, title: str) -> LeadMarkup: ...


class CoordinateLookupService(Protocol):
    async def lookup_coordinates(self, title: str) -> Optional[list[float]]: ...


class EventFeedService(Protocol):
    async def fetch_day_events(self, month: int, day: int) -> list[RawFeedEvent]: ...


# ── Helpers ───────────────────────────────────────────────────────────

def page_url(title: str, base: Optional[str] = None) -> str:
    """Public article URL for a title."""
    base = base or get_settings().wikipedia.page_url
    return base + quote(str(title).strip().replace(" ", "_"), safe="")


def _as_object(data: Any) -> dict:
    """A JSON value as an object; anything else reads as empty."""
    return data if isinstance(data, dict) else {}


def _first_page(data: Any) -> Optional[dict]:
    """First page object of an action=query response (formatversion 1 or 2)."""
    pages = _as_object(_as_object(data).get("query")).get("pages")
    if isinstance(pages, dict):
        pages = list(pages.values())
    if not pages or not isinstance(pages, list) or not isinstance(pages[0], dict):
        return None
    return pages[0]


def parse_raw_events(raw_list: list[dict]) -> list[RawFeedEvent]:
    """
    Validate raw feed dicts into RawFeedEvent models.
    Skips invalid entries with a warning.
    """
    results = []
    for raw in raw_list:
        try:
            results.append(RawFeedEvent.model_validate(raw))
        except Exception as e:
            logger.warning("Skipping malformed feed event %r: %s", str(raw)[:80], e)
    return results


# ── Client ────────────────────────────────────────────────────────────

class WikipediaClient:
    """
    One shared httpx.AsyncClient for every lookup in a session.
    Use as an async context manager, or call aclose() when done.
    """

    def __init__(
        self,
        settings: Optional[WikipediaConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings().wikipedia
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": self.settings.user_agent},
            timeout=self.settings.request_timeout,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "WikipediaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        attempt = 0
        while True:
            resp = await self._client.get(url, params=params)
            if resp.status_code == 429 and attempt < self.settings.max_retries:
                attempt += 1
                wait = _retry_after(resp)
                if wait is None:
                    wait = self.settings.backoff_base ** attempt
                logger.warning("Wikipedia rate limited (attempt %d/%d), backing off %.1fs",
                               attempt, self.settings.max_retries, wait)
                await asyncio.sleep(wait)
                continue
            resp.raise_for_status()
            return resp.json()

    # ── ArticleLookupService ─────────────────────────────────────────

    async def query_canonical_summary(self, title: str) -> CanonicalSummary:
        """Resolve redirects/normalization and fetch the intro extract and lead image."""
        data = await self._get_json(self.settings.api_url, params={
            "action": "query",
            "redirects": 1,
            "converttitles": 1,
            "prop": "extracts|pageimages",
            "exintro": 1,
            "explaintext": 1,
            "piprop": "thumbnail|original",
            "pithumbsize": self.settings.thumb_size,
            "titles": title,
            "format": "json",
            "formatversion": 2,
        })
        page = _first_page(data)
        if not page or "missing" in page or "invalid" in page:
            logger.debug("Summary: no page for '%s'", title)
            return CanonicalSummary(found=False)

        image = (page.get("original") or {}).get("source") or (page.get("thumbnail") or {}).get("source")
        return CanonicalSummary(
            found=True,
            resolved_title=page.get("title") or title,
            extract=page.get("extract") or None,
            image_url=image or None,
        )

    async def fetch_lead_markup(self, title: str) -> LeadMarkup:
        """Wikitext of section 0 (infobox + lead) of a page."""
        data = await self._get_json(self.settings.api_url, params={
            "action": "parse",
            "page": title,
            "prop": "wikitext",
            "section": 0,
            "redirects": 1,
            "format": "json",
            "formatversion": 2,
        })
        data = _as_object(data)
        if not data or data.get("error"):
            logger.debug("Parse: error for '%s': %s", title, data.get("error"))
            return LeadMarkup(found=False)

        parsed = _as_object(data.get("parse"))
        wikitext = parsed.get("wikitext")
        if isinstance(wikitext, dict):
            wikitext = wikitext.get("*")
        if not isinstance(wikitext, str):
            return LeadMarkup(found=False)

        logger.debug("Parse: '%s' -> '%s' (%d chars)", title, parsed.get("title"), len(wikitext))
        return LeadMarkup(found=True, resolved_title=parsed.get("title") or title, markup=wikitext)

    # ── CoordinateLookupService ──────────────────────────────────────

    async def lookup_coordinates(self, title: str) -> Optional[list[float]]:
        """Primary coordinates of a page as [lng, lat], or None."""
        data = await self._get_json(self.settings.api_url, params={
            "action": "query",
            "prop": "coordinates",
            "titles": title,
            "format": "json",
            "formatversion": 2,
        })
        page = _first_page(data)
        coords = (page or {}).get("coordinates")
        if not coords or not isinstance(coords, list):
            return None
        first = coords[0]
        return [float(first["lon"]), float(first["lat"])]

    # ── EventFeedService ─────────────────────────────────────────────

    async def fetch_day_events(self, month: int, day: int) -> list[RawFeedEvent]:
        url = f"{self.settings.rest_url}/feed/onthisday/events/{month:02d}/{day:02d}"
        data = await self._get_json(url)
        raw = _as_object(data).get("events")
        if not isinstance(raw, list):
            raw = []
        logger.info("Fetched %d raw events for %02d-%02d", len(raw), month, day)
        return parse_raw_events(raw)


def _retry_after(resp: httpx.Response) -> Optional[float]:
    value = resp.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
