"""
Exception hierarchy for the Quote Journal service.

Components raise these close to the failing call; the HTTP layer decides
whether an error becomes a degraded response or an error status.
"""


class QuoteJournalError(Exception):
    """Base class for all service errors."""


class QuoteProviderError(QuoteJournalError):
    """The external quote provider failed or returned an unusable batch."""


class QuoteProviderRateLimited(QuoteProviderError):
    """The external quote provider answered with HTTP 429."""


class MoodValidationError(QuoteJournalError):
    """The quote submitted for analysis is malformed."""


class MoodServiceError(QuoteJournalError):
    """The AI completion service could not produce a response."""


class JournalStoreError(QuoteJournalError):
    """The journal document store failed."""


class StoreNotConfiguredError(JournalStoreError):
    """The journal document store is missing its connection settings."""
