"""Failure taxonomy shared by the scraper, the loader and the CLI."""
from __future__ import annotations


class PropScrapeError(Exception):
    """Base class for all scrape run failures."""


class DiscoveryEmpty(PropScrapeError):
    """Raised when no category options could be discovered on the page."""


class SelectionNotFound(PropScrapeError):
    """Raised when no strategy could activate a category option."""

    def __init__(self, label: str) -> None:
        super().__init__(f'Could not select category option: "{label}"')
        self.label = label


class NoHeadersFound(PropScrapeError):
    """Raised when the table never rendered headers after a selection."""


class PersistenceFailure(PropScrapeError):
    """Raised when the store is unreachable or rejects a write."""


class LockHeld(PropScrapeError):
    """Raised when another run already holds the run lock."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Another scraper is already running (lock file exists: {path})")
        self.path = path


class SessionExpired(PropScrapeError):
    """Raised when the stored authenticated browser state is missing or rejected."""
