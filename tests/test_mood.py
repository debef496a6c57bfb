"""
Tests for mood analysis.

These tests verify input validation, reply parsing and the primary/fallback
model sequence, using a mock transport in place of the completion service.
"""

import json

import httpx
import pytest

from quote_journal.errors import MoodServiceError, MoodValidationError
from quote_journal.models import Mood, MoodResult
from quote_journal.mood import (
    FALLBACK_MOODS,
    MoodAnalyzer,
    ParseKind,
    map_mood_to_theme,
    parse_mood_response,
    time_fallback,
    validate_quote_text,
)


def completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


# MARK: - Parsing


class TestParseMoodResponse:
    def test_exact_reply(self):
        """A well-formed reply passes through unchanged."""
        parsed = parse_mood_response("wise:#8B4513")

        assert parsed.kind == ParseKind.EXACT
        assert parsed.result == MoodResult(mood="wise", color="#8B4513")
        assert parsed.result.model_dump(mode="json") == {"mood": "wise", "color": "#8B4513"}

    def test_exact_reply_with_padding_and_case(self):
        parsed = parse_mood_response("  Humorous : #ffd700\n")

        assert parsed.kind == ParseKind.EXACT
        assert parsed.result.mood == Mood.HUMOROUS
        assert parsed.result.color == "#ffd700"

    def test_bad_color_falls_back_to_keyword(self):
        """A vocabulary mood with an invalid color gets the default color."""
        parsed = parse_mood_response("wise:brown")

        assert parsed.kind == ParseKind.KEYWORD
        assert parsed.result == MoodResult(mood="wise", color="#8B4513")

    def test_unknown_mood_with_color_falls_back(self):
        parsed = parse_mood_response("reflective:#123456")

        assert parsed.kind == ParseKind.LENGTH

    def test_keyword_follows_vocabulary_order(self):
        """With several moods named, the one earliest in the vocabulary wins."""
        parsed = parse_mood_response("This feels uplifting and wise")

        assert parsed.kind == ParseKind.KEYWORD
        assert parsed.result == MoodResult(mood="wise", color="#8B4513")

        parsed = parse_mood_response("humorous, maybe inspirational")
        assert parsed.result == MoodResult(mood="inspirational", color="#1E90FF")

    def test_keyword_is_case_insensitive(self):
        parsed = parse_mood_response("Deeply MELANCHOLIC.")

        assert parsed.result == MoodResult(mood="melancholic", color="#483D8B")

    def test_length_rule(self):
        """Replies naming no mood pick from the rotation by length."""
        text = "I sense this is deeply reflective and calm"
        parsed = parse_mood_response(text)

        assert parsed.kind == ParseKind.LENGTH
        assert len(text) == 42
        assert parsed.result == FALLBACK_MOODS[len(text) % len(FALLBACK_MOODS)]
        assert parsed.result == MoodResult(mood="optimistic", color="#00CED1")
        assert parse_mood_response(text).result == parsed.result

    def test_length_rule_ignores_surrounding_whitespace(self):
        text = "I sense this is deeply reflective and calm"
        assert parse_mood_response(f"  {text}\n").result == parse_mood_response(text).result


class TestFallbacks:
    def test_time_fallback_rotation(self):
        assert time_fallback(now_ms=0) == FALLBACK_MOODS[0]
        assert time_fallback(now_ms=7) == MoodResult(mood="optimistic", color="#00CED1")
        assert time_fallback(now_ms=1_700_000_000_004) == FALLBACK_MOODS[4]

    def test_time_fallback_default_clock(self):
        assert time_fallback() in FALLBACK_MOODS

    @pytest.mark.parametrize(
        "mood, theme",
        [
            ("wise", "wise"),
            ("Happy", "uplifting"),
            (" peaceful ", "contemplative"),
            ("reflective", "reflective"),
            ("bewildered", "reflective"),
        ],
    )
    def test_map_mood_to_theme(self, mood, theme):
        assert map_mood_to_theme(mood) == theme


# MARK: - Validation


class TestValidateQuoteText:
    @pytest.mark.parametrize(
        "value, message",
        [
            (None, "required"),
            ("", "required"),
            (42, "required"),
            ("   ", "cannot be empty"),
            ("x" * 1001, "too long"),
        ],
    )
    def test_rejects(self, value, message):
        with pytest.raises(MoodValidationError, match=message):
            validate_quote_text(value)

    def test_accepts_limit(self):
        assert validate_quote_text("x" * 1000) == "x" * 1000


# MARK: - Analyzer


class TestMoodAnalyzer:
    """Analyzer behavior against a scripted completion service."""

    def setup_method(self):
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.responses.pop(0)

        self.analyzer = MoodAnalyzer(
            "test-key",
            api_url="https://ai.test/v1/chat/completions",
            primary_model="primary-model",
            fallback_model="fallback-model",
            transport=httpx.MockTransport(handler),
        )

    def models_called(self) -> list[str]:
        return [json.loads(request.content)["model"] for request in self.requests]

    async def test_rejects_empty_before_network(self):
        with pytest.raises(MoodValidationError):
            await self.analyzer.analyze("")
        assert self.requests == []

    async def test_rejects_long_text_before_network(self):
        with pytest.raises(MoodValidationError):
            await self.analyzer.analyze("x" * 1001)
        assert self.requests == []

    async def test_primary_model_answers(self):
        self.responses = [completion("wise:#8B4513")]

        result = await self.analyzer.analyze("Know thyself.")

        assert result == MoodResult(mood="wise", color="#8B4513")
        assert self.models_called() == ["primary-model"]

        request = self.requests[0]
        body = json.loads(request.content)
        assert request.headers["Authorization"] == "Bearer test-key"
        assert body["max_tokens"] == 10
        assert body["messages"][0]["role"] == "system"
        assert "Know thyself." in body["messages"][1]["content"]

    async def test_fallback_model_after_primary_failure(self):
        self.responses = [httpx.Response(502, text="bad gateway"), completion("humorous:#FFD700")]

        result = await self.analyzer.analyze("I am not young enough to know everything.")

        assert result == MoodResult(mood="humorous", color="#FFD700")
        assert self.models_called() == ["primary-model", "fallback-model"]

    async def test_fallback_model_after_empty_content(self):
        self.responses = [completion("   "), completion("optimistic")]

        result = await self.analyzer.analyze("Tomorrow is another day.")

        assert result == MoodResult(mood="optimistic", color="#00CED1")
        assert self.models_called() == ["primary-model", "fallback-model"]

    async def test_both_models_fail(self):
        self.responses = [httpx.Response(500), httpx.Response(200, json={"choices": []})]

        with pytest.raises(MoodServiceError):
            await self.analyzer.analyze("Know thyself.")
        assert len(self.requests) == 2

    @pytest.mark.parametrize(
        "payload",
        [
            {"choices": {"first": {}}},
            {"choices": "wise:#8B4513"},
            {"choices": ["wise:#8B4513"]},
            {"choices": [{"message": "wise:#8B4513"}]},
            {"choices": [{"message": {"content": 42}}]},
            ["wise:#8B4513"],
        ],
    )
    async def test_malformed_payload_tries_fallback_model(self, payload):
        """Unexpected payload shapes count as failures of that model."""
        self.responses = [httpx.Response(200, json=payload), completion("wise:#8B4513")]

        result = await self.analyzer.analyze("Know thyself.")

        assert result == MoodResult(mood="wise", color="#8B4513")
        assert self.models_called() == ["primary-model", "fallback-model"]

    async def test_timeout_is_a_service_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        analyzer = MoodAnalyzer("test-key", transport=httpx.MockTransport(handler))

        with pytest.raises(MoodServiceError, match="timeout"):
            await analyzer.analyze("Know thyself.")

    async def test_missing_api_key(self):
        analyzer = MoodAnalyzer("")

        with pytest.raises(MoodServiceError, match="not configured"):
            await analyzer.analyze("Know thyself.")
