"""
Quote retrieval for the Quote Journal service.

Quotes come from three tiers, in order of preference: a live batch from the
external quote provider, the in-memory cache of the last good batch, and a
small hardcoded table. Retrieval never fails; it degrades to a lower tier
and reports which one answered.
"""

import logging
import random
import time
from collections.abc import Callable, Sequence
from typing import NamedTuple

import httpx

from .errors import QuoteProviderError, QuoteProviderRateLimited
from .models import CachedQuoteBatch, Quote, QuoteSource

logger = logging.getLogger(__name__)

USER_AGENT = "Quote-Journal/0.1"

FALLBACK_QUOTES: tuple[Quote, ...] = (
    Quote(quote="The only way to do great work is to love what you do.", author="Steve Jobs"),
    Quote(quote="Innovation distinguishes between a leader and a follower.", author="Steve Jobs"),
    Quote(quote="Life is what happens to you while you're busy making other plans.", author="John Lennon"),
    Quote(quote="The future belongs to those who believe in the beauty of their dreams.", author="Eleanor Roosevelt"),
    Quote(quote="It is during our darkest moments that we must focus to see the light.", author="Aristotle"),
    Quote(quote="The way to get started is to quit talking and begin doing.", author="Walt Disney"),
    Quote(quote="Don't let yesterday take up too much of today.", author="Will Rogers"),
    Quote(quote="You learn more from failure than from success. Don't let it stop you. Failure builds character.", author="Unknown"),
    Quote(quote="If you are working on something that you really care about, you don't have to be pushed. The vision pulls you.", author="Steve Jobs"),
    Quote(quote="Experience is a hard teacher because she gives the test first, the lesson afterwards.", author="Vernon Law"),
    Quote(quote="To live is the rarest thing in the world. Most people just exist.", author="Oscar Wilde"),
    Quote(quote="Believe you can and you're halfway there.", author="Theodore Roosevelt"),
    Quote(quote="The only impossible journey is the one you never begin.", author="Tony Robbins"),
    Quote(quote="Success is not final, failure is not fatal: it is the courage to continue that counts.", author="Winston Churchill"),
    Quote(quote="The purpose of our lives is to be happy.", author="Dalai Lama"),
)


def pick_fallback(rng: random.Random | None = None) -> Quote:
    """Pick a quote from the hardcoded table."""
    return (rng or random).choice(FALLBACK_QUOTES)


class QuoteResult(NamedTuple):
    """A quote together with the tier that produced it."""

    quote: Quote
    source: QuoteSource
    cache_size: int | None = None


# MARK: - Provider


class ZenQuotesClient:
    """Client for the ZenQuotes bulk endpoint."""

    def __init__(
        self,
        url: str = "https://zenquotes.io/api/quotes",
        *,
        batch_size: int = 50,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.batch_size = batch_size
        self.timeout = timeout
        self._transport = transport

    async def fetch_batch(self) -> list[Quote]:
        """
        Fetch a batch of quotes from the provider.

        Returns:
            Up to ``batch_size`` quotes that have both text and author

        Raises:
            QuoteProviderRateLimited: The provider answered with HTTP 429
            QuoteProviderError: The request failed or the batch was unusable
        """
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.get(
                    self.url, headers={"User-Agent": USER_AGENT}
                )
        except httpx.HTTPError as e:
            raise QuoteProviderError(f"Quote provider request failed: {e!r}") from e

        if response.status_code == 429:
            raise QuoteProviderRateLimited("Quote provider rate limit reached")

        if not response.is_success:
            raise QuoteProviderError(
                f"Quote provider responded with status: {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise QuoteProviderError("Invalid JSON from quote provider") from e

        if not isinstance(data, list) or not data:
            raise QuoteProviderError("Invalid response format from quote provider")

        quotes = [
            Quote(quote=item["q"], author=item["a"])
            for item in data
            if isinstance(item, dict) and _is_text(item.get("q")) and _is_text(item.get("a"))
        ]
        if not quotes:
            raise QuoteProviderError("No valid quotes received from quote provider")

        return quotes[: self.batch_size]


def _is_text(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


# MARK: - Cache


class QuoteCache:
    """
    In-memory holder of the last good quote batch.

    The batch is replaced wholesale on refresh and never merged. A stale batch
    is still served when the provider is unavailable.
    """

    def __init__(
        self, ttl: float = 2 * 60 * 60, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._batch: CachedQuoteBatch | None = None

    @property
    def size(self) -> int:
        return len(self._batch.quotes) if self._batch else 0

    @property
    def quotes(self) -> tuple[Quote, ...]:
        return self._batch.quotes if self._batch else ()

    def fresh(self) -> CachedQuoteBatch | None:
        """Return the batch if it is non-empty and younger than the TTL."""
        if not self._batch or not self._batch.quotes:
            return None
        if self._clock() - self._batch.fetched_at >= self.ttl:
            return None
        return self._batch

    def replace(self, quotes: Sequence[Quote]) -> CachedQuoteBatch:
        self._batch = CachedQuoteBatch(quotes=tuple(quotes), fetched_at=self._clock())
        return self._batch

    def pick(self, rng: random.Random | None = None) -> Quote | None:
        """Pick any cached quote, fresh or stale."""
        if not self.size:
            return None
        return (rng or random).choice(self.quotes)


# MARK: - Orchestrator


class QuoteService:
    """Serves one quote at a time from the best available tier."""

    def __init__(
        self,
        provider: ZenQuotesClient,
        cache: QuoteCache | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.provider = provider
        self.cache = cache or QuoteCache()
        self._rng = rng or random.Random()

    async def get_one_quote(self) -> QuoteResult:
        """
        Get a single quote. Never raises.

        Returns:
            The quote, the tier it came from and, for cache hits and fresh
            fetches, the cache size
        """
        try:
            return await self._get_one_quote()
        except Exception:
            logger.exception("Unexpected error while retrieving a quote")
            return QuoteResult(pick_fallback(self._rng), QuoteSource.FALLBACK_ERROR)

    async def _get_one_quote(self) -> QuoteResult:
        batch = self.cache.fresh()
        if batch:
            return QuoteResult(
                self._rng.choice(batch.quotes), QuoteSource.COLLECTION, len(batch.quotes)
            )

        try:
            quotes = await self.provider.fetch_batch()
        except QuoteProviderRateLimited:
            logger.warning("Quote provider is rate limiting requests")
            return self._degrade(QuoteSource.FALLBACK_RATE_LIMITED)
        except QuoteProviderError as e:
            logger.warning("Quote provider unavailable: %s", e)
            return self._degrade(QuoteSource.FALLBACK_API_ERROR)

        batch = self.cache.replace(quotes)
        logger.info("Refreshed quote cache with %d quotes", len(batch.quotes))
        return QuoteResult(
            self._rng.choice(batch.quotes), QuoteSource.ZEN_API, len(batch.quotes)
        )

    def _degrade(self, fallback_source: QuoteSource) -> QuoteResult:
        cached = self.cache.pick(self._rng)
        if cached:
            return QuoteResult(cached, QuoteSource.COLLECTION)
        return QuoteResult(pick_fallback(self._rng), fallback_source)
