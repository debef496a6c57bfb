"""
Command-line interface tools for the Quote Journal service.
"""

import asyncio
import json
from collections.abc import Coroutine
from datetime import datetime
from typing import Any
from urllib.parse import quote as url_quote

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse
from pydantic import ValidationError

from .models import BiographyResult, JournalEntry, Theme

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="Quote Journal CLI tools")

BaseUrlOption = typer.Option(
    DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Quote Journal service"
)


# MARK: - CLI Entry Points


def cli_main() -> None:
    """Entry point for the quote-journal CLI command."""
    app()


def cli_theme_stream() -> None:
    """Entry point for the theme-stream CLI command."""
    typer.run(theme_stream)


# MARK: - Commands


@app.command()
def quote(
    base_url: str = BaseUrlOption,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Fetch one quote."""

    async def _quote() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/api/quotes")
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            source = response.headers.get("x-quote-source", "unknown")
            print(f'"{result["quote"]}"\n  - {result["author"]} [{source}]')

    _run_command(_quote(), base_url)


@app.command()
def analyze(
    text: str = typer.Argument(..., help="The quote text to analyze"),
    base_url: str = BaseUrlOption,
) -> None:
    """Analyze the mood of a quote."""

    async def _analyze() -> None:
        async with httpx.AsyncClient(timeout=35.0) as client:
            response = await client.post(f"{base_url}/api/analyze", json={"quote": text})
            if response.status_code in (400, 429):
                print(f"Error: {response.json()['error']}")
                raise typer.Exit(1)
            response.raise_for_status()
            result = response.json()
            suffix = " (fallback)" if response.headers.get("x-fallback") == "true" else ""
            print(f"{result['mood']} {result['color']}{suffix}")

    _run_command(_analyze(), base_url)


@app.command("journal-list")
def journal_list(base_url: str = BaseUrlOption) -> None:
    """List saved quotes, most recent first."""

    async def _list() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/api/journal")
            _raise_for_api_error(response)
            entries = [JournalEntry.model_validate(item) for item in response.json()]

            if not entries:
                print("Journal is empty")
                return
            for entry in entries:
                saved = entry.saved_at.strftime("%Y-%m-%d %H:%M")
                print(f"{entry.id}  {saved}  \"{entry.quote}\" - {entry.author}")

    _run_command(_list(), base_url)


@app.command("journal-save")
def journal_save(
    text: str = typer.Argument(..., help="The quote text"),
    author: str = typer.Argument(..., help="The quote author"),
    base_url: str = BaseUrlOption,
) -> None:
    """Save a quote to the journal."""

    async def _save() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{base_url}/api/journal", json={"quote": text, "author": author}
            )
            _raise_for_api_error(response)
            print(f"Saved as {response.json()['insertedId']}")

    _run_command(_save(), base_url)


@app.command("journal-remove")
def journal_remove(
    entry_id: str = typer.Argument(..., help="Identifier of the entry to remove"),
    base_url: str = BaseUrlOption,
) -> None:
    """Remove a quote from the journal."""

    async def _remove() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.delete(f"{base_url}/api/journal/{entry_id}")
            _raise_for_api_error(response)
            print(response.json()["message"])

    _run_command(_remove(), base_url)


@app.command()
def author(
    name: str = typer.Argument(..., help="Author name"),
    base_url: str = BaseUrlOption,
) -> None:
    """Show an author biography."""

    async def _author() -> None:
        async with httpx.AsyncClient(timeout=25.0) as client:
            response = await client.get(
                f"{base_url}/api/authors/{url_quote(name, safe='')}"
            )
            response.raise_for_status()
            result = BiographyResult.model_validate(response.json())

            if not result.success or result.data is None:
                print(f"No biography: {result.error}")
                return
            print(result.data.name)
            print(result.data.summary)
            if result.data.url:
                print(result.data.url)

    _run_command(_author(), base_url)


@app.command()
def theme(base_url: str = BaseUrlOption) -> None:
    """Show the current UI theme."""

    async def _theme() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/api/theme")
            response.raise_for_status()
            print(_format_theme(Theme.model_validate(response.json())))

    _run_command(_theme(), base_url)


@app.command("theme-stream")
def theme_stream(base_url: str = BaseUrlOption) -> None:
    """Stream theme updates in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/api/theme/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/api/theme/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_command(_stream(), base_url)


# MARK: - Private Helpers


def _format_theme(theme: Theme) -> str:
    """Format a theme with optional timestamp."""
    label = theme.name
    if theme.mood and theme.color:
        label = f"{theme.name} ({theme.mood.value} {theme.color})"

    if not theme.timestamp:
        return label

    dt = datetime.fromtimestamp(theme.timestamp)
    timestamp = dt.strftime("%H:%M:%S")
    return f"{timestamp} > {label}"


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Print one theme event, or the error it carries."""
    try:
        payload = json.loads(sse.data)
    except json.JSONDecodeError:
        print(f"Warning: Could not parse SSE data: {sse.data}")
        return

    error = payload.get("error") if isinstance(payload, dict) else None
    if sse.event == "error" or error:
        print(f"Server error: {error or 'Unknown error'}")
        return

    try:
        theme = Theme.model_validate(payload)
    except ValidationError as e:
        print(f"Warning: Not a theme update ({e.error_count()} invalid fields)")
        return
    print(_format_theme(theme))


def _raise_for_api_error(response: httpx.Response) -> None:
    """Print the service's error message for 4xx/5xx JSON responses and exit."""
    if response.is_success:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        response.raise_for_status()
        return
    print(f"Error: {payload.get('error', f'HTTP {response.status_code}')}")
    if payload.get("details"):
        print(f"Details: {payload['details']}")
    raise typer.Exit(1)


def _run_command(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run a command coroutine, mapping transport failures to exit codes."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code} from {e.request.url.path}")
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        print(f"Error: {type(e).__name__}: {e}")
        raise typer.Exit(1)
    except ValueError as e:
        # Includes payloads that do not validate as the expected model
        print(f"Error: Unexpected response from {base_url}: {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
