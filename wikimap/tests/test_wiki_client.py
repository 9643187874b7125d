"""
Tests for the Wikipedia HTTP client against a mocked transport.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from wikimap.config import WikipediaConfig
from wikimap.models import Category
from wikimap.resolver import EntityResolver
from wikimap.wiki_client import WikipediaClient, page_url, parse_raw_events

SUMMARY_PAYLOAD = {
    "query": {
        "redirects": [{"from": "Springfield, Illinois, United States", "to": "Springfield, Illinois"}],
        "pages": [{
            "pageid": 1,
            "title": "Springfield, Illinois",
            "extract": "Springfield is the capital city of Illinois.",
            "thumbnail": {"source": "https://upload.wikimedia.org/thumb.jpg"},
            "original": {"source": "https://upload.wikimedia.org/orig.jpg"},
        }],
    }
}


def run(coro):
    return asyncio.run(coro)


async def _call(handler, method, *args, **config):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = WikipediaClient(WikipediaConfig(backoff_base=0.0, **config), client=http)
        return await getattr(client, method)(*args)


class TestArticleLookup:
    def test_canonical_summary(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=SUMMARY_PAYLOAD)

        summary = run(_call(handler, "query_canonical_summary", "Springfield, Illinois, United States"))
        assert summary.found
        assert summary.resolved_title == "Springfield, Illinois"
        assert summary.extract == "Springfield is the capital city of Illinois."
        assert summary.image_url == "https://upload.wikimedia.org/orig.jpg"
        assert seen["titles"] == "Springfield, Illinois, United States"
        assert seen["redirects"] == "1"
        assert seen["prop"] == "extracts|pageimages"

    def test_missing_page(self):
        def handler(request):
            return httpx.Response(200, json={"query": {"pages": [{"title": "Nowhere", "missing": True}]}})

        summary = run(_call(handler, "query_canonical_summary", "Nowhere"))
        assert not summary.found
        assert summary.resolved_title is None

    def test_lead_markup(self):
        def handler(request):
            assert request.url.params["section"] == "0"
            return httpx.Response(200, json={
                "parse": {"title": "Amur", "wikitext": "{{Infobox river\n| name = Amur\n}}"}
            })

        lead = run(_call(handler, "fetch_lead_markup", "Amur River"))
        assert lead.found
        assert lead.resolved_title == "Amur"
        assert lead.markup.startswith("{{Infobox river")

    def test_lead_markup_legacy_format(self):
        def handler(request):
            return httpx.Response(200, json={"parse": {"title": "Amur", "wikitext": {"*": "text"}}})

        assert run(_call(handler, "fetch_lead_markup", "Amur")).markup == "text"

    def test_lead_markup_error(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": "missingtitle", "info": "missing"}})

        assert not run(_call(handler, "fetch_lead_markup", "Nowhere")).found


class TestCoordinateLookup:
    def test_coordinates_are_lng_lat(self):
        def handler(request):
            return httpx.Response(200, json={"query": {"pages": [{
                "title": "Rome",
                "coordinates": [{"lat": 41.9, "lon": 12.5, "primary": True, "globe": "earth"}],
            }]}})

        assert run(_call(handler, "lookup_coordinates", "Rome")) == [12.5, 41.9]

    def test_no_coordinates(self):
        def handler(request):
            return httpx.Response(200, json={"query": {"pages": [{"title": "Philosophy"}]}})

        assert run(_call(handler, "lookup_coordinates", "Philosophy")) is None

    def test_legacy_page_dict(self):
        def handler(request):
            return httpx.Response(200, json={"query": {"pages": {"123": {
                "title": "Rome", "coordinates": [{"lat": 41.9, "lon": 12.5}],
            }}}})

        assert run(_call(handler, "lookup_coordinates", "Rome")) == [12.5, 41.9]


class TestEventFeed:
    def test_feed_url_and_parsing(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json={"events": [
                {"year": 1969, "text": "Apollo 11 lands.", "pages": [{"title": "Apollo_11"}]},
                {"text": "Malformed", "pages": "not a list"},
            ]})

        events = run(_call(handler, "fetch_day_events", 7, 4))
        assert seen == ["/api/rest_v1/feed/onthisday/events/07/04"]
        assert len(events) == 1
        assert events[0].year == 1969
        assert events[0].pages[0].title == "Apollo_11"

    def test_parse_raw_events_keeps_extra_fields(self):
        events = parse_raw_events([{"year": "44 BC", "text": "x", "pages": [], "extra": 1}])
        assert events[0].year == "44 BC"


class TestRetries:
    def test_rate_limit_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) == 1:
                return httpx.Response(429, headers={"Retry-After": "0"})
            return httpx.Response(200, json=SUMMARY_PAYLOAD)

        assert run(_call(handler, "query_canonical_summary", "Springfield")).found
        assert len(attempts) == 2

    def test_rate_limit_gives_up(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(429)

        with pytest.raises(httpx.HTTPStatusError):
            run(_call(handler, "query_canonical_summary", "Springfield", max_retries=2))
        assert len(attempts) == 3

    def test_server_error_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(500)

        with pytest.raises(httpx.HTTPStatusError):
            run(_call(handler, "lookup_coordinates", "Rome"))
        assert len(attempts) == 1


class TestPageUrl:
    def test_encoding(self):
        assert page_url("Springfield, Illinois", "https://en.wikipedia.org/wiki/") == \
            "https://en.wikipedia.org/wiki/Springfield%2C_Illinois"
        assert page_url("Apollo_11", "https://x/") == "https://x/Apollo_11"


class TestMalformedBodies:
    def test_non_object_json_reads_as_missing(self):
        def handler(request):
            return httpx.Response(200, json=["unexpected", "list"])

        assert not run(_call(handler, "query_canonical_summary", "Rome")).found
        assert not run(_call(handler, "fetch_lead_markup", "Rome")).found
        assert run(_call(handler, "lookup_coordinates", "Rome")) is None
        assert run(_call(handler, "fetch_day_events", 7, 20)) == []

    def test_odd_nested_shapes(self):
        def handler(request):
            if request.url.params.get("action") == "parse":
                return httpx.Response(200, json={"parse": "not an object"})
            return httpx.Response(200, json={"query": {"pages": ["not an object"]}})

        assert not run(_call(handler, "fetch_lead_markup", "Rome")).found
        assert not run(_call(handler, "query_canonical_summary", "Rome")).found
        assert run(_call(handler, "lookup_coordinates", "Rome")) is None

    def test_resolver_moves_past_malformed_candidate(self):
        def handler(request):
            params = request.url.params
            title = params.get("titles") or params.get("page")
            if title == "Amur":
                return httpx.Response(200, text="<html>maintenance</html>")
            if params.get("action") == "parse":
                return httpx.Response(200, json={"parse": {
                    "title": "Amur River", "wikitext": "'''Amur River''' is a river in Asia.",
                }})
            return httpx.Response(200, json={"query": {"pages": [{
                "title": "Amur River", "extract": "The Amur is a river in East Asia.",
            }]}})

        async def resolve():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                client = WikipediaClient(WikipediaConfig(), client=http)
                return await EntityResolver(client).resolve("Amur", ["Amur", "Amur River"], Category.RIVER)

        result = run(resolve())
        assert result.found
        assert result.wiki_title == "Amur River"
