"""
Tests for candidate resolution: disambiguation, category verification and
per-session memoization. The Wikipedia services are in-memory fakes.
"""

from __future__ import annotations

import asyncio

import pytest

from wikimap.cache import WikiCache
from wikimap.models import Category, Stat
from wikimap.resolver import EntityResolver, is_disambiguation, verify_category

SPRINGFIELD_CANDIDATES = [
    "Springfield, Illinois, United States",
    "Springfield, Illinois",
    "Springfield, United States",
    "Springfield city",
    "Springfield",
]


def run(coro):
    return asyncio.run(coro)


class TestDisambiguation:
    @pytest.mark.parametrize("markup", [
        "{{disambiguation}}",
        "{{Disambiguation|geo}}",
        "{{dab}}",
        "{{hndis|Smith, John}}",
        "'''Mercury''' may refer to:",
    ])
    def test_detected(self, markup):
        assert is_disambiguation(markup)

    def test_regular_article(self, city_markup):
        assert not is_disambiguation(city_markup)
        assert not is_disambiguation(None)
        assert not is_disambiguation("")


class TestVerifyCategory:
    def test_city(self):
        assert verify_category("{{Infobox settlement}}", "A small town in Ohio.", Category.CITY)
        assert not verify_category("{{Infobox album}}", "A city pop album.", Category.CITY)
        assert not verify_category("", "Springfield is a 2004 film about a city.", Category.CITY)

    def test_city_exclusions_are_whole_words(self):
        assert verify_category("", "A township and city with a shipyard.", Category.CITY)

    def test_infobox_type_accepted(self):
        markup = "{{Infobox body of water\n| name = Tana\n}}"
        assert verify_category(markup, "Tana is a freshwater body in Ethiopia.", Category.LAKE)
        assert not verify_category(markup, "Tana is a freshwater body in Ethiopia.", Category.RIVER)

    def test_sea_accepts_ocean(self):
        assert verify_category("", "The Arctic Ocean is the smallest ocean.", Category.SEA)

    def test_unchecked_categories(self):
        assert verify_category("", None, Category.COUNTRY)
        assert verify_category(None, None, Category.DEFAULT)


class TestEntityResolver:
    def test_first_verified_candidate_wins(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)
        result = run(resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY))

        assert result.found
        assert result.wiki_title == "Springfield, Illinois"
        assert result.extract.startswith("Springfield is the capital city")
        assert result.image == "https://upload.wikimedia.org/springfield.jpg"
        assert result.stats[0] == Stat(icon="👥", label="Population", value="114,394")
        # stopped at the first candidate, which redirects to the article
        assert springfield_wiki.count("summary") == 1

    def test_disambiguation_page_skipped(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)
        result = run(resolver.resolve("Springfield", ["Springfield", "Springfield, Illinois"], Category.CITY))

        assert result.wiki_title == "Springfield, Illinois"
        assert springfield_wiki.count("summary") == 2

    def test_category_mismatch_skipped(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)
        result = run(resolver.resolve(
            "Springfield", ["Springfield (film)", "Springfield, Illinois"], Category.CITY
        ))
        assert result.wiki_title == "Springfield, Illinois"

    def test_network_failure_moves_to_next_candidate(self, springfield_wiki):
        springfield_wiki.failing.add("Springfield, Illinois, United States")
        resolver = EntityResolver(springfield_wiki)
        result = run(resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY))

        assert result.found
        assert result.wiki_title == "Springfield, Illinois"
        assert springfield_wiki.count("summary") == 2

    def test_nothing_verifies(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)
        result = run(resolver.resolve("Springfield", ["Springfield", "Springfield (film)"], Category.CITY))

        assert not result.found
        assert result.wiki_title is None
        assert result.stats == []

    def test_empty_input_not_cached(self, springfield_wiki):
        cache = WikiCache()
        resolver = EntityResolver(springfield_wiki, cache)

        assert not run(resolver.resolve("Springfield", [], Category.CITY)).found
        assert not run(resolver.resolve("", ["Springfield, Illinois"], Category.CITY)).found
        assert len(cache) == 0
        assert springfield_wiki.calls == []

    def test_idempotent_within_session(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)

        async def twice():
            first = await resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY)
            calls = len(springfield_wiki.calls)
            second = await resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY)
            return first, second, calls

        first, second, calls = run(twice())
        assert first == second
        assert len(springfield_wiki.calls) == calls

    def test_not_found_is_cached(self, fake_wiki):
        cache = WikiCache()
        resolver = EntityResolver(fake_wiki, cache)

        async def twice():
            await resolver.resolve("Atlantis", ["Atlantis"], Category.CITY)
            await resolver.resolve("Atlantis", ["Atlantis"], Category.CITY)

        run(twice())
        assert fake_wiki.count("summary", "Atlantis") == 1
        assert ("city", "Atlantis") in cache

    def test_cache_key_includes_category(self, fake_wiki):
        fake_wiki.add_page("Jordan", "'''Jordan''' is a country.", extract="Jordan is a country.")
        fake_wiki.add_page("Jordan River", "'''Jordan River''' is a river.", extract="The Jordan River is a river.")
        resolver = EntityResolver(fake_wiki)

        async def both():
            country = await resolver.resolve("Jordan", ["Jordan"], Category.COUNTRY)
            river = await resolver.resolve("Jordan", ["Jordan River"], Category.RIVER)
            return country, river

        country, river = run(both())
        assert country.wiki_title == "Jordan"
        assert river.wiki_title == "Jordan River"

    def test_concurrent_callers_share_one_search(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)

        async def together():
            return await asyncio.gather(*(
                resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY) for _ in range(5)
            ))

        results = run(together())
        assert all(r.wiki_title == "Springfield, Illinois" for r in results)
        assert springfield_wiki.count("summary") == 1
        assert springfield_wiki.count("markup") == 1

    def test_returned_results_are_copies(self, springfield_wiki):
        resolver = EntityResolver(springfield_wiki)

        async def mutate_then_reread():
            first = await resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY)
            first.stats.clear()
            return await resolver.resolve("Springfield", SPRINGFIELD_CANDIDATES, Category.CITY)

        again = run(mutate_then_reread())
        assert len(again.stats) == 6
