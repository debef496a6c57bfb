"""
FastAPI server for the Quote Journal service.

This module implements the HTTP API: quote retrieval with cache and fallback
tiers, rate-limited mood analysis, the saved-quote journal, author
biographies, and Server-Sent Events streaming of the current UI theme.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from .biography import WikipediaClient
from .config import Settings, get_settings
from .errors import (
    JournalStoreError,
    MoodServiceError,
    MoodValidationError,
    StoreNotConfiguredError,
)
from .journal import JournalStore, MongoJournalStore, is_valid_entry_id
from .logger import setup_logging
from .models import BiographyResult, Quote, Theme
from .mood import MoodAnalyzer, time_fallback
from .quotes import QuoteCache, QuoteService, ZenQuotesClient
from .ratelimit import RateLimiter, client_id_from_headers
from .store import ThemeStore

logger = logging.getLogger(__name__)

NO_CACHE = "no-cache, no-store, must-revalidate"
NOT_CONFIGURED_MESSAGE = (
    "Database connection not configured. "
    "Please set the MONGODB_URI and MONGODB_DB environment variables."
)


# API Request/Response Schemas
class JournalEntryIn(BaseModel):
    """Payload for saving a quote to the journal."""

    quote: str = Field(..., min_length=1, description="The quote text")
    author: str = Field(..., min_length=1, description="The quote author")


def _store_error_response(action: str, error: JournalStoreError) -> JSONResponse:
    logger.error("Failed to %s: %s", action, error)
    if isinstance(error, StoreNotConfiguredError):
        message = NOT_CONFIGURED_MESSAGE
    else:
        message = f"Failed to {action}"
    return JSONResponse({"error": message, "details": str(error)}, status_code=500)


def create_app(
    settings: Settings | None = None,
    *,
    quote_service: QuoteService | None = None,
    mood_analyzer: MoodAnalyzer | None = None,
    rate_limiter: RateLimiter | None = None,
    journal_store: JournalStore | None = None,
    biography_client: WikipediaClient | None = None,
    theme_store: ThemeStore | None = None,
) -> FastAPI:
    """
    Create a FastAPI application with the given collaborators.

    Collaborators that are not supplied are built from ``settings``.

    Args:
        settings: Service configuration (defaults to the environment)
        quote_service: Quote retrieval with its cache
        mood_analyzer: Mood analysis client
        rate_limiter: Limiter guarding mood analysis
        journal_store: Storage for saved quotes
        biography_client: Author biography lookup
        theme_store: Holder of the current UI theme

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    quote_service = quote_service or QuoteService(
        ZenQuotesClient(
            settings.quotes_api_url,
            batch_size=settings.quote_batch_size,
            timeout=settings.quote_timeout,
        ),
        QuoteCache(ttl=settings.quote_cache_ttl),
    )
    mood_analyzer = mood_analyzer or MoodAnalyzer(
        settings.openrouter_api_key,
        api_url=settings.openrouter_api_url,
        primary_model=settings.mood_primary_model,
        fallback_model=settings.mood_fallback_model,
        timeout=settings.mood_timeout,
        referer=settings.app_url,
        title=settings.app_name,
    )
    rate_limiter = rate_limiter or RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window=settings.rate_limit_window,
    )
    journal_store = journal_store or MongoJournalStore(
        settings.mongodb_uri, settings.mongodb_db
    )
    biography_client = biography_client or WikipediaClient(
        settings.wikipedia_base_url, timeout=settings.wikipedia_timeout
    )
    theme_store = theme_store or ThemeStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        logger.info("%s v%s started", settings.app_name, settings.app_version)
        yield
        await journal_store.close()
        logger.info("%s stopped", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        description="Quote discovery, journaling and mood theming service",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [
            f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}"
            for err in exc.errors()
        ]
        return JSONResponse({"error": "; ".join(messages)}, status_code=400)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "quote-journal"}

    # MARK: - Quotes

    @app.get("/api/quotes")
    async def get_quote() -> JSONResponse:
        """
        Get one quote.

        Always succeeds; the ``X-Quote-Source`` header names the tier that
        answered and ``X-Cache-Size`` reports the cache size when it was used.
        """
        result = await quote_service.get_one_quote()
        headers = {"Cache-Control": NO_CACHE, "X-Quote-Source": result.source.value}
        if result.cache_size is not None:
            headers["X-Cache-Size"] = str(result.cache_size)
        return JSONResponse(result.quote.model_dump(), headers=headers)

    @app.options("/api/quotes")
    async def quotes_preflight() -> Response:
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "GET, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
            },
        )

    # MARK: - Mood analysis

    @app.post("/api/analyze")
    async def analyze_quote(request: Request) -> JSONResponse:
        """
        Analyze the mood of a quote and re-theme the UI from it.

        Rate limited per client. Failures of the completion service degrade to
        a rotating fallback mood marked with ``X-Fallback: true``.
        """
        client_id = client_id_from_headers(request.headers)
        if not rate_limiter.allow(client_id):
            logger.warning("Rate limit exceeded for client %s", client_id)
            return JSONResponse(
                {"error": "Rate limit exceeded. Please try again later."},
                status_code=429,
                headers={"Retry-After": str(int(rate_limiter.window))},
            )

        try:
            body = await request.json()
        except ValueError:
            return JSONResponse({"error": "Invalid JSON in request body"}, status_code=400)

        if not isinstance(body, dict):
            return JSONResponse(
                {"error": "Request body must be a JSON object"}, status_code=400
            )

        headers = {"Cache-Control": NO_CACHE}
        try:
            result = await mood_analyzer.analyze(body.get("quote"))
        except MoodValidationError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except MoodServiceError as e:
            logger.warning("Mood analysis unavailable, using fallback: %s", e)
            result = time_fallback()
            headers["X-Fallback"] = "true"
        except Exception:
            logger.exception("Unexpected error during mood analysis")
            return JSONResponse(
                {"error": "Internal server error. Please try again later."},
                status_code=500,
            )

        await theme_store.apply_mood(result)
        return JSONResponse(result.model_dump(mode="json"), headers=headers)

    @app.get("/api/analyze")
    async def analyze_wrong_method() -> JSONResponse:
        return JSONResponse(
            {"error": "Method not allowed. Use POST to analyze quotes."},
            status_code=405,
            headers={"Allow": "POST, OPTIONS"},
        )

    @app.options("/api/analyze")
    async def analyze_preflight() -> Response:
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "POST, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
                "Access-Control-Max-Age": "86400",
            },
        )

    # MARK: - Journal

    @app.get("/api/journal")
    async def list_journal() -> JSONResponse:
        """List saved quotes, most recent first."""
        try:
            entries = await journal_store.list_entries()
        except JournalStoreError as e:
            return _store_error_response("fetch journal entries", e)
        return JSONResponse(
            [entry.model_dump(mode="json", by_alias=True) for entry in entries]
        )

    @app.post("/api/journal")
    async def save_to_journal(entry: JournalEntryIn) -> JSONResponse:
        """
        Save a quote to the journal.

        ``savedAt`` is stamped by the server; any client value is ignored.
        """
        try:
            inserted_id = await journal_store.insert(
                Quote(quote=entry.quote, author=entry.author)
            )
        except JournalStoreError as e:
            return _store_error_response("save journal entry", e)
        logger.info("Saved journal entry %s", inserted_id)
        return JSONResponse(
            {"message": "Entry saved", "insertedId": inserted_id}, status_code=201
        )

    @app.delete("/api/journal/{entry_id}")
    async def delete_from_journal(entry_id: str) -> JSONResponse:
        """Remove a saved quote."""
        if not is_valid_entry_id(entry_id):
            return JSONResponse({"error": "Invalid ID format"}, status_code=400)

        try:
            deleted = await journal_store.delete(entry_id)
        except JournalStoreError as e:
            return _store_error_response("delete journal entry", e)

        if not deleted:
            return JSONResponse({"error": "Entry not found"}, status_code=404)
        logger.info("Deleted journal entry %s", entry_id)
        return JSONResponse({"message": "Entry deleted successfully"})

    # MARK: - Authors

    @app.get("/api/authors/{name}")
    async def get_author(name: str) -> BiographyResult:
        """Look up an author biography; misses come back as failed results."""
        return await biography_client.lookup(name)

    # MARK: - Theme

    @app.get("/api/theme")
    async def get_theme() -> Theme:
        """Get the current UI theme."""
        return await theme_store.read()

    @app.get("/api/theme/stream")
    async def stream_theme() -> StreamingResponse:
        """
        Stream theme updates via Server-Sent Events.

        The current theme is sent immediately, then every change after a mood
        analysis.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            try:
                async with theme_store.stream() as theme_stream:
                    async for theme in theme_stream:
                        data = json.dumps(theme.model_dump(mode="json"))
                        yield f"data: {data}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("Theme stream failed")
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    return app


app = create_app()


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "quote_journal.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
