"""
Theme storage for the Quote Journal service.

Every mood analysis re-themes the UI. This module keeps the current theme in
memory and streams changes to subscribers, so open pages can follow the
theme without polling.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from .models import MoodResult, Theme
from .mood import map_mood_to_theme
from .palette import generate_palette

DEFAULT_THEME_NAME = "default"


class ThemeStore:
    """
    In-memory theme storage with real-time streaming capabilities.

    Subscribers wait on a condition variable and are woken on every update.
    """

    def __init__(self) -> None:
        self._current_theme = Theme(name=DEFAULT_THEME_NAME, timestamp=time.time())
        self._condition = asyncio.Condition()
        self._version = 0

    async def apply_mood(self, result: MoodResult) -> Theme:
        """
        Derive a theme from an analyzed mood and make it current.

        Args:
            result: The mood and color to theme from

        Returns:
            The new current theme
        """
        theme = Theme(
            name=map_mood_to_theme(result.mood.value),
            mood=result.mood,
            color=result.color,
            palette=generate_palette(result.color),
            timestamp=time.time(),
        )
        return await self.update(theme)

    async def update(self, theme: Theme) -> Theme:
        """Replace the current theme and notify all subscribers."""
        async with self._condition:
            self._current_theme = theme
            self._version += 1
            self._condition.notify_all()
            return theme

    async def read(self) -> Theme:
        async with self._condition:
            return self._current_theme

    @asynccontextmanager
    async def stream(self) -> AsyncGenerator[AsyncGenerator[Theme, None], None]:
        """
        Subscribe to theme changes.

        Yields:
            An async generator producing the current theme, then each newer
            one. A subscriber that falls behind skips ahead to the latest.
        """
        yield self._follow()

    async def _follow(self) -> AsyncGenerator[Theme, None]:
        seen = -1
        while True:
            async with self._condition:
                await self._condition.wait_for(lambda: self._version > seen)
                seen = self._version
                theme = self._current_theme
            # Lock released before handing the theme to a possibly slow subscriber
            yield theme
