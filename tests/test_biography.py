"""
Tests for author biography lookups.

A mock transport stands in for Wikipedia; each test scripts the summary
endpoint and the search API separately.
"""

import httpx
import pytest

from quote_journal.biography import (
    WikipediaClient,
    clean_extract,
    first_success,
    normalize_author_name,
)
from quote_journal.models import Biography, BiographyResult

EINSTEIN_EXTRACT = (
    "Albert Einstein (14 March 1879 – 18 April 1955) was a German-born "
    "theoretical physicist."
)

SUMMARY = {
    "title": "Albert Einstein",
    "extract": EINSTEIN_EXTRACT,
    "content_urls": {"desktop": {"page": "https://en.wikipedia.org/wiki/Albert_Einstein"}},
    "thumbnail": {"source": "https://upload.test/einstein.jpg"},
}

SEARCH_HITS = {"query": {"search": [{"title": "Albert Einstein", "snippet": "", "pageid": 736}]}}

PAGE = {
    "query": {
        "pages": {
            "736": {
                "title": "Albert Einstein",
                "extract": EINSTEIN_EXTRACT,
                "thumbnail": {"source": "https://upload.test/einstein-200.jpg"},
            }
        }
    }
}


def route(summary=None, search=None, page=None):
    """Build a transport answering each Wikipedia endpoint from a script."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.startswith("/api/rest_v1/page/summary/"):
            answer = summary
        elif request.url.params.get("list") == "search":
            answer = search
        else:
            answer = page
        if isinstance(answer, Exception):
            raise answer
        return answer or httpx.Response(404)

    return httpx.MockTransport(handler), requests


def kinds(requests: list[httpx.Request]) -> list[str]:
    out = []
    for request in requests:
        if request.url.path.startswith("/api/rest_v1/page/summary/"):
            out.append("summary")
        elif request.url.params.get("list") == "search":
            out.append("search")
        else:
            out.append("page")
    return out


# MARK: - Helpers


class TestNormalizeAuthorName:
    def test_strips_prefix_and_suffix(self):
        assert normalize_author_name("Dr. Martin Luther King Jr.") == "Martin Luther King"

    def test_case_insensitive(self):
        assert normalize_author_name("prof. Albert Einstein") == "Albert Einstein"
        assert normalize_author_name("Henry Ford iii") == "Henry Ford"

    def test_plain_name_untouched(self):
        assert normalize_author_name("  Oscar Wilde ") == "Oscar Wilde"


class TestCleanExtract:
    def test_removes_parentheses_and_whitespace(self):
        assert clean_extract(EINSTEIN_EXTRACT) == (
            "Albert Einstein was a German-born theoretical physicist."
        )

    def test_truncates_at_sentence(self):
        text = "A" * 380 + ". " + "B" * 200
        assert clean_extract(text) == "A" * 380 + "."

    def test_truncates_with_ellipsis(self):
        assert clean_extract("x" * 600) == "x" * 500 + "..."

    def test_empty(self):
        assert clean_extract("") == ""


class TestFirstSuccess:
    async def test_stops_at_first_success(self):
        calls = []

        async def miss(name):
            calls.append("miss")
            return BiographyResult.failure("Author not found")

        async def hit(name):
            calls.append("hit")
            return BiographyResult.found(Biography(name=name, summary="Known."))

        async def never(name):
            calls.append("never")
            return BiographyResult.failure("unreachable")

        result = await first_success([miss, hit, never], "Someone")

        assert result.success is True
        assert calls == ["miss", "hit"]

    async def test_returns_last_failure(self):
        async def first(name):
            return BiographyResult.failure("first")

        async def second(name):
            return BiographyResult.failure("second")

        result = await first_success([first, second], "Someone")

        assert result == BiographyResult(success=False, error="second")


# MARK: - Client


class TestWikipediaClient:
    async def test_summary_hit(self):
        """A direct summary answers without touching the search API."""
        transport, requests = route(summary=httpx.Response(200, json=SUMMARY))
        client = WikipediaClient(transport=transport)

        result = await client.lookup("Dr. Albert Einstein")

        assert result.success is True
        assert result.data == Biography(
            name="Albert Einstein",
            summary="Albert Einstein was a German-born theoretical physicist.",
            url="https://en.wikipedia.org/wiki/Albert_Einstein",
            thumbnail="https://upload.test/einstein.jpg",
        )
        assert kinds(requests) == ["summary"]
        assert requests[0].url.path.endswith("/Albert Einstein")
        assert requests[0].headers["User-Agent"].startswith("QuoteJournal")

    async def test_search_after_summary_miss(self):
        """A 404 summary falls back to search and a page extract."""
        transport, requests = route(
            summary=httpx.Response(404),
            search=httpx.Response(200, json=SEARCH_HITS),
            page=httpx.Response(200, json=PAGE),
        )
        client = WikipediaClient(transport=transport)

        result = await client.lookup("Einstein")

        assert result.success is True
        assert result.data.name == "Albert Einstein"
        assert result.data.url == "https://en.wikipedia.org/wiki/Albert%20Einstein"
        assert result.data.thumbnail == "https://upload.test/einstein-200.jpg"
        assert kinds(requests) == ["summary", "search", "page"]
        assert requests[1].url.params["srsearch"] == "Einstein"
        assert requests[2].url.params["titles"] == "Albert Einstein"

    async def test_search_after_empty_extract(self):
        transport, requests = route(
            summary=httpx.Response(200, json={"title": "Einstein", "extract": " "}),
            search=httpx.Response(200, json=SEARCH_HITS),
            page=httpx.Response(200, json=PAGE),
        )

        result = await WikipediaClient(transport=transport).lookup("Einstein")

        assert result.success is True
        assert kinds(requests) == ["summary", "search", "page"]

    async def test_search_after_summary_timeout(self):
        request = httpx.Request("GET", "https://en.wikipedia.org/")
        transport, requests = route(
            summary=httpx.ReadTimeout("timed out", request=request),
            search=httpx.Response(200, json=SEARCH_HITS),
            page=httpx.Response(200, json=PAGE),
        )

        result = await WikipediaClient(transport=transport).lookup("Einstein")

        assert result.success is True

    async def test_not_found_anywhere(self):
        transport, requests = route(
            summary=httpx.Response(404),
            search=httpx.Response(200, json={"query": {"search": []}}),
        )

        result = await WikipediaClient(transport=transport).lookup("Nobody In Particular")

        assert result == BiographyResult(success=False, error="Author not found")
        assert kinds(requests) == ["summary", "search"]

    async def test_search_timeout_is_tagged(self):
        request = httpx.Request("GET", "https://en.wikipedia.org/")
        transport, _ = route(
            summary=httpx.Response(404),
            search=httpx.ConnectTimeout("timed out", request=request),
        )

        result = await WikipediaClient(transport=transport).lookup("Einstein")

        assert result == BiographyResult(success=False, error="Request timeout")

    async def test_server_error_is_tagged(self):
        transport, _ = route(
            summary=httpx.Response(500),
            search=httpx.Response(503),
        )

        result = await WikipediaClient(transport=transport).lookup("Einstein")

        assert result.success is False
        assert "503" in result.error

    async def test_odd_summary_fields_are_dropped(self):
        """Unexpected optional fields do not spoil an otherwise good summary."""
        summary = dict(SUMMARY, content_urls={"desktop": None}, thumbnail="not-an-object")
        transport, _ = route(summary=httpx.Response(200, json=summary))

        result = await WikipediaClient(transport=transport).lookup("Albert Einstein")

        assert result.success is True
        assert result.data.url is None
        assert result.data.thumbnail is None

    @pytest.mark.parametrize(
        "summary, search, page",
        [
            ({"extract": 42}, {"query": {"search": {"title": "x"}}}, None),
            (["not", "an", "object"], {"query": {"search": ["Albert Einstein"]}}, None),
            (None, SEARCH_HITS, {"query": {"pages": [PAGE["query"]["pages"]["736"]]}}),
            (None, SEARCH_HITS, {"query": {"pages": {"736": {"extract": ["text"]}}}}),
        ],
    )
    async def test_malformed_payloads_fail_cleanly(self, summary, search, page):
        transport, _ = route(
            summary=httpx.Response(200, json=summary) if summary is not None else None,
            search=httpx.Response(200, json=search),
            page=httpx.Response(200, json=page) if page is not None else None,
        )

        result = await WikipediaClient(transport=transport).lookup("Einstein")

        assert result.success is False
        assert result.error

    async def test_blank_name(self):
        transport, requests = route()

        result = await WikipediaClient(transport=transport).lookup("   ")

        assert result == BiographyResult(success=False, error="Author name is required")
        assert requests == []
