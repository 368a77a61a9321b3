"""
Sitemap resolver: turns a site origin into the list of page URLs to crawl.
"""
from __future__ import annotations

from typing import List, Sequence

from site_index.crawler.fetcher import Fetcher
from site_index.domain import match_origin, remove_duplicates
from site_index.logger import get_logger
from site_index.parser.sitemap_parser import parse_sitemap

__all__ = ["SitemapResolver"]

log = get_logger("sitemap")


class SitemapResolver:
    """Fetch ``<origin>/sitemap.xml`` and keep the URLs that belong to the site.

    NetworkError and ParseError propagate unchanged; retries are whatever the
    fetcher was configured with.
    """

    def __init__(self, fetcher: Fetcher, *, max_sitemaps: int = 50) -> None:
        self.fetcher = fetcher
        self.max_sitemaps = max_sitemaps

    async def resolve(self, origin: str, origins: Sequence[str] = ()) -> List[str]:
        """Return same-site page URLs in sitemap order, without duplicates.

        *origins* lists every prefix accepted as "this site" (defaults to
        *origin* alone).
        """
        accepted = list(origins) or [origin]
        sitemap_url = f"{origin}/sitemap.xml"
        sitemap = parse_sitemap((await self.fetcher.fetch(sitemap_url)).text)

        urls = list(sitemap.urls)
        children = [u for u in sitemap.sitemaps if match_origin(u, accepted)]
        if len(children) > self.max_sitemaps:
            log.warning("Sitemap index %s lists %d sitemaps, reading first %d",
                        sitemap_url, len(children), self.max_sitemaps)
            children = children[: self.max_sitemaps]
        for child_url in children:
            # nested indexes are not followed
            urls.extend(parse_sitemap((await self.fetcher.fetch(child_url)).text).urls)

        kept = [u for u in urls if match_origin(u, accepted)]
        if len(kept) != len(urls):
            log.info("Dropped %d off-site URLs from %s", len(urls) - len(kept), sitemap_url)
        return remove_duplicates(kept)
