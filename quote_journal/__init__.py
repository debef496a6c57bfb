"""
Quote Journal - quote discovery, journaling and mood theming service.

This package provides a webserver that serves quotes from an external provider
with cache and fallback tiers, analyzes quote moods through an AI completion
service, keeps a journal of saved quotes and looks up author biographies.
"""

__version__ = "0.1.0"
