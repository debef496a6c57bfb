"""
Author biographies from Wikipedia.

A lookup tries an ordered list of strategies and returns the first success:
the REST summary for an exact title, then a full-text search whose top hit
is fetched as a plain-text extract. Lookups never raise; failures come back
as a ``BiographyResult`` carrying an error message.
"""

import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from urllib.parse import quote as url_quote

import httpx

from .models import Biography, BiographyResult

logger = logging.getLogger(__name__)

USER_AGENT = "QuoteJournal/0.1 (author biography lookup)"

SUMMARY_PATH = "/api/rest_v1/page/summary"
ACTION_PATH = "/w/api.php"

HONORIFIC_PREFIX = re.compile(r"^(Dr\.|Mr\.|Mrs\.|Ms\.|Prof\.)\s+", re.IGNORECASE)
GENERATIONAL_SUFFIX = re.compile(r"\s+(Jr\.|Sr\.|III|IV)$", re.IGNORECASE)

Strategy = Callable[[str], Awaitable[BiographyResult]]


def normalize_author_name(name: str) -> str:
    """Strip honorific prefixes and generational suffixes."""
    name = HONORIFIC_PREFIX.sub("", name.strip())
    name = GENERATIONAL_SUFFIX.sub("", name)
    return name.strip()


def clean_extract(text: str, max_length: int = 500) -> str:
    """
    Tidy an article extract for display.

    Parenthesised asides are dropped and whitespace collapsed. Long text is cut
    at the last full stop past 70% of ``max_length``, or hard-cut with "...".
    """
    if not text:
        return ""

    cleaned = re.sub(r"\([^)]*\)", "", text)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    if len(cleaned) > max_length:
        truncated = cleaned[:max_length]
        last_sentence = truncated.rfind(".")
        if last_sentence > max_length * 0.7:
            cleaned = truncated[: last_sentence + 1]
        else:
            cleaned = truncated + "..."

    return cleaned


def _obj(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def _text(value: object) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


async def first_success(strategies: Sequence[Strategy], name: str) -> BiographyResult:
    """Run strategies in order; return the first success or the last failure."""
    result = BiographyResult.failure("No lookup strategy available")
    for strategy in strategies:
        result = await strategy(name)
        if result.success:
            return result
        logger.debug("Biography strategy %s failed for %r: %s", strategy.__name__, name, result.error)
    return result


class WikipediaClient:
    """Looks up author biographies."""

    def __init__(
        self,
        base_url: str = "https://en.wikipedia.org",
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def strategies(self) -> list[Strategy]:
        return [self.fetch_summary, self.search]

    async def lookup(self, name: str) -> BiographyResult:
        """
        Find a biography for an author.

        Args:
            name: Author name as shown with the quote

        Returns:
            A successful result with the biography, or a failure with a reason
        """
        if not name or not name.strip():
            return BiographyResult.failure("Author name is required")

        normalized = normalize_author_name(name)
        if not normalized:
            return BiographyResult.failure("Invalid author name")

        result = await first_success(self.strategies, normalized)
        if not result.success:
            logger.warning("No biography for %r: %s", normalized, result.error)
        return result

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    async def fetch_summary(self, name: str) -> BiographyResult:
        """Direct REST summary lookup by title."""
        url = f"{self.base_url}{SUMMARY_PATH}/{url_quote(name, safe='')}"
        try:
            async with self._client() as client:
                response = await client.get(url)
                if response.status_code == 404:
                    return BiographyResult.failure("Author not found")
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            return BiographyResult.failure("Request timeout")
        except (httpx.HTTPError, ValueError) as e:
            return BiographyResult.failure(str(e) or type(e).__name__)

        data = _obj(data)
        extract = _text(data.get("extract"))
        if not extract:
            return BiographyResult.failure("No biography available")

        return BiographyResult.found(
            Biography(
                name=_text(data.get("title")) or name,
                summary=clean_extract(extract),
                url=_text(_obj(_obj(data.get("content_urls")).get("desktop")).get("page")),
                thumbnail=_text(_obj(data.get("thumbnail")).get("source")),
            )
        )

    async def search(self, name: str) -> BiographyResult:
        """Full-text search, then fetch the extract of the top hit."""
        search_params = {
            "action": "query",
            "list": "search",
            "srsearch": name,
            "format": "json",
            "srlimit": "1",
        }
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}{ACTION_PATH}", params=search_params)
                response.raise_for_status()
                hits = _obj(_obj(response.json()).get("query")).get("search")
                title = _text(_obj(hits[0]).get("title")) if isinstance(hits, list) and hits else None
                if not title:
                    return BiographyResult.failure("Author not found")

                page_params = {
                    "action": "query",
                    "prop": "extracts|pageimages",
                    "exintro": "true",
                    "explaintext": "true",
                    "exsectionformat": "plain",
                    "piprop": "thumbnail",
                    "pithumbsize": "200",
                    "titles": title,
                    "format": "json",
                }
                response = await client.get(f"{self.base_url}{ACTION_PATH}", params=page_params)
                response.raise_for_status()
                pages = _obj(_obj(response.json()).get("query")).get("pages")
        except httpx.TimeoutException:
            return BiographyResult.failure("Request timeout")
        except (httpx.HTTPError, ValueError) as e:
            return BiographyResult.failure(str(e) or type(e).__name__)

        if not isinstance(pages, dict) or not pages:
            return BiographyResult.failure("No page data available")

        page = _obj(next(iter(pages.values())))
        extract = _text(page.get("extract"))
        if not extract:
            return BiographyResult.failure("No biography available")

        page_title = _text(page.get("title")) or title
        return BiographyResult.found(
            Biography(
                name=page_title,
                summary=clean_extract(extract),
                url=f"{self.base_url}/wiki/{url_quote(page_title)}",
                thumbnail=_text(_obj(page.get("thumbnail")).get("source")),
            )
        )
