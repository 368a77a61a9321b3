"""
Page extractor: fetch one page and turn it into an :class:`IndexedPage`.
"""
from __future__ import annotations

from typing import Optional

from site_index.crawler.fetcher import Fetcher
from site_index.crawler.robots import RobotsTxtRules
from site_index.domain import strip_origin
from site_index.errors import ParseError
from site_index.models import IndexedPage
from site_index.parser.html_parser import extract_page

__all__ = ["PageExtractor", "DisallowedError"]


class DisallowedError(ParseError):
    """Page excluded by robots.txt."""


class PageExtractor:
    """Fetches a page and extracts its title, meta description and main text."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        content_selector: str = "main",
        robots: Optional[RobotsTxtRules] = None,
        user_agent: str = "",
    ) -> None:
        self.fetcher = fetcher
        self.content_selector = content_selector
        self.robots = robots
        self.user_agent = user_agent

    async def extract(self, url: str, origin: str) -> IndexedPage:
        """Return the page at *url* keyed by its path relative to *origin*.

        Raises NetworkError when the page cannot be fetched and ParseError
        when it is not HTML (or robots.txt forbids it).
        """
        path = strip_origin(url, origin)
        if self.robots is not None and not self.robots.can_fetch(self.user_agent, path):
            raise DisallowedError("disallowed by robots.txt", url=url)

        doc = await self.fetcher.fetch(url)
        if not doc.is_html:
            raise ParseError(f"not an HTML page ({doc.content_type or 'no content type'})", url=url)

        parsed = extract_page(doc.text, self.content_selector)
        return IndexedPage(
            path=path,
            title=parsed.title,
            description=parsed.description,
            content=parsed.content,
        )
