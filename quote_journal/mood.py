"""
Quote mood analysis for the Quote Journal service.

The mood of a quote is requested from an OpenAI-compatible completion
service (OpenRouter) in ``mood:#RRGGBB`` form. Replies are free text, so the
parser accepts the strict form first and then degrades to total fallback
rules that always produce a mood and a color.
"""

import logging
import re
import time
from enum import Enum
from typing import Any, NamedTuple

import httpx

from .errors import MoodServiceError, MoodValidationError
from .models import Mood, MoodResult

logger = logging.getLogger(__name__)

MAX_QUOTE_LENGTH = 1000

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

MOOD_COLORS: dict[Mood, str] = {
    Mood.INSPIRATIONAL: "#1E90FF",
    Mood.MOTIVATIONAL: "#FF4500",
    Mood.PHILOSOPHICAL: "#4B0082",
    Mood.HUMOROUS: "#FFD700",
    Mood.MELANCHOLIC: "#483D8B",
    Mood.OPTIMISTIC: "#00CED1",
    Mood.CONTEMPLATIVE: "#8A2BE2",
    Mood.WISE: "#8B4513",
    Mood.UPLIFTING: "#FF69B4",
}

# Rotation used when nothing in a reply (or no reply at all) names a mood
FALLBACK_MOODS: tuple[MoodResult, ...] = (
    MoodResult(mood=Mood.INSPIRATIONAL, color="#1E90FF"),
    MoodResult(mood=Mood.MOTIVATIONAL, color="#FF4500"),
    MoodResult(mood=Mood.OPTIMISTIC, color="#00CED1"),
    MoodResult(mood=Mood.WISE, color="#8B4513"),
    MoodResult(mood=Mood.UPLIFTING, color="#FF69B4"),
)

SYSTEM_PROMPT = (
    "You are an expert emotional analyst who captures the PRECISE emotional "
    "essence of quotes. Be bold and specific - avoid generic labels. Respond "
    'with EXACTLY this format: "mood:hexcolor" where mood is ONE word from: '
    f"{', '.join(m.value for m in Mood)}. "
    'AVOID "reflective" - be more specific! For hexcolor, choose a BOLD, '
    "emotionally-charged color that viscerally represents the quote's energy. "
    "Use vibrant, saturated colors that make people FEEL the emotion. "
    'Examples: "motivational:#FF4500" (fiery orange), "melancholic:#4B0082" '
    '(deep indigo), "humorous:#FFD700" (bright gold), "wise:#8B4513" (rich '
    'brown), "optimistic:#00CED1" (electric turquoise).'
)

# Theme names for moods outside the vocabulary, as well as the vocabulary itself
THEME_ALIASES: dict[str, str] = {
    **{m.value: m.value for m in Mood},
    "reflective": "reflective",
    "thoughtful": "reflective",
    "peaceful": "contemplative",
    "energetic": "motivational",
    "sad": "melancholic",
    "happy": "uplifting",
    "positive": "optimistic",
    "encouraging": "inspirational",
    "funny": "humorous",
    "deep": "philosophical",
    "spiritual": "contemplative",
    "hopeful": "optimistic",
    "empowering": "motivational",
}
DEFAULT_THEME = "reflective"


# MARK: - Validation


def validate_quote_text(quote: Any) -> str:
    """
    Check a quote before it is sent for analysis.

    Raises:
        MoodValidationError: The quote is missing, blank or too long
    """
    if not isinstance(quote, str) or not quote:
        raise MoodValidationError("Quote field is required and must be a string")
    if not quote.strip():
        raise MoodValidationError("Quote cannot be empty")
    if len(quote) > MAX_QUOTE_LENGTH:
        raise MoodValidationError(
            f"Quote is too long (maximum {MAX_QUOTE_LENGTH} characters)"
        )
    return quote


def build_messages(quote: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                "What is the SPECIFIC emotional essence of this quote? Be bold "
                f'and precise - what exact feeling does it evoke? Quote: "{quote}"'
            ),
        },
    ]


# MARK: - Parsing


class ParseKind(str, Enum):
    """Which rule produced a parsed mood."""

    EXACT = "exact"
    KEYWORD = "keyword"
    LENGTH = "length"


class MoodParse(NamedTuple):
    result: MoodResult
    kind: ParseKind


def parse_mood_response(text: str) -> MoodParse:
    """
    Parse a completion reply into a mood and color.

    Rules, first match wins:

    - ``exact``: ``mood:#RRGGBB`` with a vocabulary mood and a valid color
    - ``keyword``: the first vocabulary mood, in declaration order, that the
      text contains, paired with its default color
    - ``length``: ``FALLBACK_MOODS[len(text) % len(FALLBACK_MOODS)]``

    ``text`` is stripped before any rule is applied.
    """
    text = text.strip()

    if ":" in text:
        mood_part, color_part = text.split(":")[:2]
        mood = _as_mood(mood_part.strip().lower())
        color = color_part.strip()
        if mood and COLOR_PATTERN.match(color):
            return MoodParse(MoodResult(mood=mood, color=color), ParseKind.EXACT)

    lowered = text.lower()
    for mood in Mood:
        if mood.value in lowered:
            return MoodParse(MoodResult(mood=mood, color=MOOD_COLORS[mood]), ParseKind.KEYWORD)

    return MoodParse(length_fallback(text), ParseKind.LENGTH)


def length_fallback(text: str) -> MoodResult:
    return FALLBACK_MOODS[len(text) % len(FALLBACK_MOODS)]


def time_fallback(now_ms: int | None = None) -> MoodResult:
    """Fallback mood used when the completion service is unreachable."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return FALLBACK_MOODS[now_ms % len(FALLBACK_MOODS)]


def map_mood_to_theme(mood: str) -> str:
    """Map a mood label, or a close synonym, to a theme name."""
    return THEME_ALIASES.get(mood.strip().lower(), DEFAULT_THEME)


def _as_mood(value: str) -> Mood | None:
    try:
        return Mood(value)
    except ValueError:
        return None


# MARK: - Analyzer


class MoodAnalyzer:
    """Asks the completion service for the mood of a quote."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = "https://openrouter.ai/api/v1/chat/completions",
        primary_model: str = "google/gemini-2.0-flash-exp:free",
        fallback_model: str = "google/gemini-2.5-pro",
        timeout: float = 15.0,
        referer: str = "http://localhost:8000",
        title: str = "Quote Journal",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        self.timeout = timeout
        self.referer = referer
        self.title = title
        self._transport = transport

    async def analyze(self, quote: str) -> MoodResult:
        """
        Analyze the mood of a quote.

        Args:
            quote: Quote text, at most 1000 characters

        Returns:
            The mood and its color

        Raises:
            MoodValidationError: The quote is invalid; nothing was sent
            MoodServiceError: Both the primary and fallback models failed
        """
        validate_quote_text(quote)

        try:
            reply = await self._complete(quote, self.primary_model)
        except MoodServiceError as e:
            logger.warning(
                "Primary model %s failed (%s), retrying with %s",
                self.primary_model,
                e,
                self.fallback_model,
            )
            reply = await self._complete(quote, self.fallback_model)

        parsed = parse_mood_response(reply)
        logger.debug("Parsed mood reply %r as %s (%s)", reply, parsed.result, parsed.kind.value)
        return parsed.result

    async def _complete(self, quote: str, model: str) -> str:
        if not self.api_key:
            raise MoodServiceError("OpenRouter API key not configured")

        payload = {
            "model": model,
            "messages": build_messages(quote),
            "temperature": 0.3,
            "max_tokens": 10,
            "top_p": 0.8,
            "stream": False,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise MoodServiceError("Request timeout") from e
        except httpx.HTTPError as e:
            raise MoodServiceError(f"Completion request failed: {e!r}") from e

        if not response.is_success:
            raise MoodServiceError(
                f"Completion API error: {response.status_code} - {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MoodServiceError("Invalid JSON response from completion API") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise MoodServiceError("No response from completion API")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise MoodServiceError("Empty response content from completion API")

        return content
