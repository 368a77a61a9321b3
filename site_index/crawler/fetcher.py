# site_index/crawler/fetcher.py
"""
Fetcher module: handles HTTP requests with rate limiting, retry/backoff, and timeout.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession

from site_index.config import IndexerConfig
from site_index.errors import NetworkError
from site_index.logger import get_logger

__all__ = ["FetchedDocument", "Fetcher", "RETRY_STATUS"]

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

log = get_logger("fetcher")


@dataclass(slots=True)
class FetchedDocument:
    """Body of a successful (2xx) response."""

    url: str
    status: int
    content_type: str
    text: str

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type


class _RetryableStatus(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"retryable status {status}")
        self.status = status


class Fetcher:
    """Handles HTTP fetching with rate limit, retries/backoff, and timeout.

    One instance serves one crawl: the rate window is per crawl, the
    *limiter* semaphore is shared by every crawl of the process.
    """

    def __init__(
        self,
        session: ClientSession,
        config: IndexerConfig,
        limiter: Optional[asyncio.Semaphore] = None,
        retry_status: Sequence[int] = RETRY_STATUS,
    ) -> None:
        self.session = session
        self.config = config
        self._limiter = limiter or asyncio.Semaphore(config.max_connections)
        self._retry_status = retry_status
        self._rate_lock = asyncio.Lock()
        self._last_request_ts = 0.0
        self.crawl_delay: Optional[float] = None

    async def fetch(self, url: str) -> FetchedDocument:
        """
        Fetch *url* and return its decoded body.

        Raises NetworkError on connection failure, timeout or a non-2xx
        status once the configured retries are exhausted.
        """
        attempts = 0
        while True:
            await self._wait_for_rate_limit()
            try:
                async with self._limiter:
                    return await self._get(url)
            except asyncio.TimeoutError as exc:
                # no retry on timeout
                raise NetworkError(f"timeout fetching {url}", url=url) from exc
            except (ClientError, _RetryableStatus) as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    raise NetworkError(f"failed to fetch {url}: {exc}", url=url) from exc
                # exponential backoff, cap at 60s
                backoff = min(self.config.backoff_base * 2 ** (attempts - 1), 60)
                log.debug("Retry %d/%d for %s after %.2f s", attempts, self.config.retry_times, url, backoff)
                await asyncio.sleep(backoff)

    async def _get(self, url: str) -> FetchedDocument:
        async with self.session.get(url, raise_for_status=False) as resp:
            if resp.status in self._retry_status:
                raise _RetryableStatus(resp.status)
            if not 200 <= resp.status < 300:
                raise NetworkError(f"HTTP {resp.status} for {url}", url=url)
            ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
            text = await resp.text(errors="replace")
            return FetchedDocument(url=str(resp.url), status=resp.status, content_type=ctype, text=text)

    async def _wait_for_rate_limit(self) -> None:
        interval = max(1 / self.config.rate_limit, self.crawl_delay or 0)
        async with self._rate_lock:
            now = time.monotonic()
            wait = interval - (now - self._last_request_ts)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_ts = time.monotonic()
