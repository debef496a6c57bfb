"""
Theme palette derivation from a single ``#RRGGBB`` mood color.
"""

import math

from .models import ThemePalette

SURFACE_COLOR = "#ffffff"


def _channels(hex_color: str) -> tuple[int, int, int]:
    return (
        int(hex_color[1:3], 16),
        int(hex_color[3:5], 16),
        int(hex_color[5:7], 16),
    )


def _round(value: float) -> int:
    # Half-up, matching browser Math.round
    return math.floor(value + 0.5)


def _to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def lighten(hex_color: str, percent: float) -> str:
    """Move each channel ``percent`` of the way towards 255."""
    return _to_hex(
        *(min(255, _round(c + (255 - c) * (percent / 100))) for c in _channels(hex_color))
    )


def darken(hex_color: str, percent: float) -> str:
    """Scale each channel down by ``percent``."""
    return _to_hex(
        *(max(0, _round(c * (1 - percent / 100))) for c in _channels(hex_color))
    )


def hex_to_rgba(hex_color: str, alpha: float) -> str:
    r, g, b = _channels(hex_color)
    return f"rgba({r}, {g}, {b}, {alpha})"


def generate_palette(color: str) -> ThemePalette:
    """
    Derive the full theme palette from a mood color.

    Args:
        color: Base color as ``#RRGGBB``

    Returns:
        Palette with the base color as accent and darker or lighter variants
        for the other roles
    """
    return ThemePalette(
        primary=darken(color, 30),
        secondary=darken(color, 20),
        accent=color,
        accent_hover=darken(color, 10),
        background=lighten(color, 45),
        surface=SURFACE_COLOR,
        surface_elevated=lighten(SURFACE_COLOR, 3),
        muted=darken(color, 15),
        border=lighten(color, 40),
        shadow=hex_to_rgba(color, 0.08),
        shadow_lg=hex_to_rgba(color, 0.12),
    )
