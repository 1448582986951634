# ysba_ticker/errors.py
"""
Error taxonomy for the scraping engine.

ConfigurationError is a client error and is never retried. Everything under
ScrapeError is considered transient by the orchestrator's retry loop.
"""

from __future__ import annotations

from typing import Optional


class YSBAError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(YSBAError):
    """Raised when a division/tier key does not resolve to a known partition."""


class ScrapeError(YSBAError):
    """A scrape attempt failed. Carries the label of the queued operation."""

    def __init__(self, message: str, label: Optional[str] = None) -> None:
        super().__init__(message)
        self.label = label

    def __str__(self) -> str:
        msg = super().__str__()
        return f"[{self.label}] {msg}" if self.label else msg


class ExtractionError(ScrapeError):
    """Results table, header row, or data rows missing from the page."""


class NavigationError(ScrapeError):
    """Navigation or form interaction failed."""


class ScrapeTimeoutError(NavigationError):
    """A navigation or wait exceeded its timeout."""


class SessionFailure(ScrapeError):
    """The shared browser failed to launch or reported itself disconnected."""
