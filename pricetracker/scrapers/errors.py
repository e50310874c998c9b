"""Exceptions raised by the scraping engine.

Expected scrape outcomes (CAPTCHA blocks, empty pages, unparseable prices)
are not exceptions: they surface as empty results or ``None``.
"""


class ScraperError(Exception):
    """Base class for scraping engine errors."""


class NavigationError(ScraperError):
    """A page failed to load under both the primary and fallback strategy."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"Navigation to {url} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AdapterNotFound(ScraperError):
    """No adapter is registered for the requested source."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"No adapter registered for source: {source}")


class SessionStateError(ScraperError):
    """A browser session was used in a state that does not allow it."""


class RulesetError(ScraperError):
    """An extraction ruleset file could not be loaded or validated."""
