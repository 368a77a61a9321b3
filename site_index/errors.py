# site_index/errors.py
"""
Error taxonomy for the SiteIndex pipeline.

Every error carries an HTTP ``status`` so that the web layer can map it
without a lookup table.
"""
from __future__ import annotations

__all__ = [
    "SiteIndexError",
    "NetworkError",
    "ParseError",
    "NotFoundError",
    "IndexNotReadyError",
    "ConflictError",
    "ValidationError",
]


class SiteIndexError(Exception):
    """Base class for all SiteIndex errors."""

    status: int = 500

    def __init__(self, message: str = "", *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url

    def describe(self) -> str:
        """Return ``"ClassName: message"`` for job records and logs."""
        return f"{type(self).__name__}: {self.message}" if self.message else type(self).__name__


class NetworkError(SiteIndexError):
    """Origin or sitemap unreachable (connection error, timeout, bad status)."""

    status = 502


class ParseError(SiteIndexError):
    """Malformed sitemap, HTML or durable index file."""

    status = 502


class NotFoundError(SiteIndexError):
    """No index cached for the domain and no crawl available."""

    status = 404


class IndexNotReadyError(NotFoundError):
    """No index yet, but the first crawl for the domain is running."""

    status = 503


class ConflictError(SiteIndexError):
    """A crawl is already running for the domain."""

    status = 409


class ValidationError(SiteIndexError):
    """Missing or malformed request fields."""

    status = 400
