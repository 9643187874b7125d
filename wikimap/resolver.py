"""
Disambiguation and verification of article candidates.

Given the ordered title candidates for a feature, find the first one that:
  1. exists (after redirects and title normalization),
  2. has lead-section wikitext,
  3. is not a disambiguation page,
  4. reads like the expected kind of entity (a city, a river, ...).

Candidates are tried strictly one after another; the first verified article
wins and ends the search. Any failure on a single candidate (network,
malformed payload) only moves on to the next one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import ValidationError

from wikimap.cache import WikiCache
from wikimap.models import Category, WikiResult
from wikimap.wiki_client import ArticleLookupService
from wikimap.wikitext.fields import DEFAULT_MAX_STATS, extract_stats

logger = logging.getLogger(__name__)

# Failures that disqualify one candidate without aborting the resolution
CANDIDATE_ERRORS = (httpx.HTTPError, ValidationError, KeyError, ValueError, TypeError)

DISAMBIGUATION_TEMPLATE_RE = re.compile(
    r"\{\{\s*(?:disambiguation|disambig|dab|hndis|geodis|set index article)\b", re.I
)
DISAMBIGUATION_PHRASES = ("may refer to", "refer to:", "disambiguation page")


def is_disambiguation(markup: Optional[str]) -> bool:
    if not markup:
        return False
    if DISAMBIGUATION_TEMPLATE_RE.search(markup):
        return True
    text = markup.lower()
    return any(phrase in text for phrase in DISAMBIGUATION_PHRASES)


# ── Category verification policy ──────────────────────────────────────

@dataclass(frozen=True)
class VerificationRule:
    """Keyword heuristic for "this article is about a <category>".

    excluded: whole words that mark a competing kind of article.
    required: substrings, at least one must occur...
    infobox_types: ...unless the markup has one of these infobox types.
    """
    required: tuple[str, ...]
    infobox_types: tuple[str, ...] = ()
    excluded: tuple[str, ...] = ()

    def matches(self, markup: str, extract: Optional[str]) -> bool:
        text = f"{markup} {extract or ''}".lower()
        for word in self.excluded:
            if re.search(rf"\b{re.escape(word)}s?\b", text):
                return False
        if any(word in text for word in self.required):
            return True
        return any(
            re.search(r"\{\{\s*infobox\s+" + re.escape(kind), markup, re.I)
            for kind in self.infobox_types
        )


VERIFICATION_POLICY: dict[Category, VerificationRule] = {
    Category.CITY: VerificationRule(
        required=("city", "town", "municipality", "settlement"),
        infobox_types=("settlement",),
        excluded=("film", "ship", "vehicle", "album", "book"),
    ),
    Category.RIVER: VerificationRule(required=("river",), infobox_types=("river",)),
    Category.LAKE: VerificationRule(required=("lake",), infobox_types=("lake", "body of water")),
    Category.SEA: VerificationRule(required=("sea", "ocean"), infobox_types=("body of water", "sea", "ocean")),
    Category.STRAIT: VerificationRule(required=("strait",), infobox_types=("strait", "body of water")),
}


def verify_category(markup: Optional[str], extract: Optional[str], category: Category) -> bool:
    """Countries and uncategorised features always verify."""
    rule = VERIFICATION_POLICY.get(Category.parse(category))
    if rule is None:
        return True
    return rule.matches(markup or "", extract)


# ── Resolver ──────────────────────────────────────────────────────────

class EntityResolver:
    """Resolves a feature to a WikiResult, memoized per (category, name)."""

    def __init__(
        self,
        articles: ArticleLookupService,
        cache: Optional[WikiCache] = None,
        max_stats: int = DEFAULT_MAX_STATS,
    ) -> None:
        self.articles = articles
        self.cache = cache if cache is not None else WikiCache()
        self.max_stats = max_stats

    async def resolve(
        self,
        feature_name: str,
        candidates: list[str],
        category: Category | str,
    ) -> WikiResult:
        """First verified article among candidates, tried in order.

        The feature's context (country, state or province) is already
        folded into the candidates by build_title_candidates, so the
        resolver only sees titles. EnrichmentSession.resolve_entity does
        both steps from the feature's properties.
        """
        category = Category.parse(category)
        if not feature_name or not candidates:
            return WikiResult.not_found()

        key = (category.value, feature_name)
        result = await self.cache.get_or_compute(
            key, lambda: self._search(feature_name, list(candidates), category)
        )
        return result.model_copy(deep=True)

    async def _search(self, feature_name: str, candidates: list[str], category: Category) -> WikiResult:
        for cand in candidates:
            logger.debug("Wiki attempt: searching for '%s'", cand)
            try:
                result = await self._try_candidate(cand, category)
            except CANDIDATE_ERRORS as e:
                logger.warning("Wiki attempt '%s' failed: %s", cand, e)
                continue
            if result is not None:
                logger.info("Wiki result: '%s' -> article '%s'", feature_name, result.wiki_title)
                return result

        logger.info("Wiki result: no suitable article for '%s' (%d candidates)",
                    feature_name, len(candidates))
        return WikiResult.not_found()

    async def _try_candidate(self, cand: str, category: Category) -> Optional[WikiResult]:
        summary = await self.articles.query_canonical_summary(cand)
        if not summary.found or not summary.resolved_title:
            logger.debug("Wiki attempt '%s': not found", cand)
            return None

        lead = await self.articles.fetch_lead_markup(summary.resolved_title)
        if not lead.found or lead.markup is None:
            logger.debug("Wiki attempt '%s': wikitext unavailable", cand)
            return None

        if is_disambiguation(lead.markup):
            logger.debug("Wiki attempt '%s': disambiguation page", cand)
            return None

        if not verify_category(lead.markup, summary.extract, category):
            logger.debug("Wiki attempt '%s': not a %s article", cand, category.value)
            return None

        return WikiResult(
            found=True,
            wiki_title=lead.resolved_title or summary.resolved_title,
            extract=summary.extract,
            image=summary.image_url,
            stats=extract_stats(lead.markup, self.max_stats),
        )
