"""
Crawl orchestrator: sitemap -> pages -> index, one job per domain at a time.
"""
from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from aiohttp import ClientSession, ClientTimeout

from site_index.config import IndexerConfig
from site_index.crawler.extractor import PageExtractor
from site_index.crawler.fetcher import Fetcher
from site_index.crawler.robots import load_robots
from site_index.crawler.sitemap import SitemapResolver
from site_index.domain import match_origin, normalize_domain, origin_for, origin_variants
from site_index.errors import ConflictError, NetworkError, NotFoundError, ParseError, SiteIndexError, ValidationError
from site_index.logger import get_logger
from site_index.models import CrawlJob, IndexedPage, JobState, PageFailure, ProgressEvent, SiteIndex
from site_index.progress import ProgressBroadcaster
from site_index.store import IndexStore

__all__ = ["CrawlOrchestrator"]

log = get_logger("crawler")

SessionFactory = Callable[[], ClientSession]


class CrawlOrchestrator:
    """Runs crawl jobs in the background and tracks their state.

    At most one job is active per domain; jobs for distinct domains run
    concurrently and share the ``max_connections`` limit on outbound
    requests.
    """

    def __init__(
        self,
        config: IndexerConfig,
        store: IndexStore,
        broadcaster: ProgressBroadcaster,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.broadcaster = broadcaster
        self._session_factory = session_factory or self._default_session
        self._jobs: Dict[str, CrawlJob] = {}
        self._active: Dict[str, CrawlJob] = {}
        self._tasks: Dict[str, asyncio.Task[CrawlJob]] = {}
        self._limiter: Optional[asyncio.Semaphore] = None

    # ------------------------------------------------------------------ #
    # public contract
    # ------------------------------------------------------------------ #
    def start_crawl(self, domain: str, job_id: str) -> CrawlJob:
        """Register and launch a crawl job; must be called from a running loop.

        Re-triggering a known job id for the same domain returns that job.
        Raises ConflictError when another job is active for the domain or the
        id belongs to another domain, ValidationError on bad input.
        """
        if not job_id or not isinstance(job_id, str):
            raise ValidationError("job id is required")
        key = normalize_domain(domain)

        existing = self._jobs.get(job_id)
        if existing is not None:
            if existing.domain != key:
                raise ConflictError(f"job {job_id} belongs to {existing.domain}")
            return existing

        active = self._active.get(key)
        if active is not None:
            raise ConflictError(f"crawl {active.id} already running for {key}")

        job = CrawlJob(id=job_id, domain=key)
        self._jobs[job_id] = job
        self._active[key] = job
        task = asyncio.create_task(self._execute(job), name=f"crawl:{key}:{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job_id, None))
        self._prune_jobs()
        log.info("Crawl %s queued for %s", job_id, key)
        return job

    def _prune_jobs(self) -> None:
        """Forget the oldest terminal jobs beyond ``job_history``."""
        excess = len(self._jobs) - self.config.job_history
        if excess <= 0:
            return
        for job_id in [j.id for j in self._jobs.values() if j.state.is_terminal][:excess]:
            del self._jobs[job_id]

    def get_job(self, job_id: str) -> CrawlJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"unknown job {job_id}")
        return job

    def active_job(self, domain: str) -> Optional[CrawlJob]:
        return self._active.get(normalize_domain(domain))

    async def wait(self, job_id: str) -> CrawlJob:
        """Wait for the job to reach a terminal state and return it."""
        job = self.get_job(job_id)
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return job

    async def run(self, domain: str, job_id: str) -> CrawlJob:
        """Start a crawl and wait for it."""
        return await self.wait(self.start_crawl(domain, job_id).id)

    async def aclose(self) -> None:
        """Let running crawls finish; there is no cancellation."""
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            log.info("Waiting for %d running crawl(s)", len(pending))
            await asyncio.gather(*pending)

    # ------------------------------------------------------------------ #
    # job execution
    # ------------------------------------------------------------------ #
    async def _execute(self, job: CrawlJob) -> CrawlJob:
        start = time.monotonic()
        try:
            if self.config.subscriber_wait:
                attached = await self.broadcaster.wait_for_subscriber(job.id, self.config.subscriber_wait)
                if not attached:
                    log.debug("No progress subscriber for job %s, crawling anyway", job.id)
            job.state = JobState.RUNNING
            pages = await self._crawl(job)
            index = SiteIndex(job.domain, pages)
            await self.store.put(job.domain, index)
            job.indexed = len(index)
            job.state = JobState.COMPLETED
            log.info(
                "Crawl %s for %s completed: %d/%d pages indexed, %d skipped in %.2f s",
                job.id, job.domain, job.indexed, job.total, len(job.failures), time.monotonic() - start,
            )
        except SiteIndexError as exc:
            self._fail(job, exc.describe())
        except OSError as exc:
            self._fail(job, f"{type(exc).__name__}: {exc}")
        except Exception as exc:
            log.exception("Crawl %s for %s crashed", job.id, job.domain)
            self._fail(job, f"{type(exc).__name__}: {exc}")
        finally:
            self._active.pop(job.domain, None)
            self.broadcaster.publish(
                job.id,
                ProgressEvent(job.id, job.done, job.total, final=True, error=job.error),
            )
        return job

    def _fail(self, job: CrawlJob, error: str) -> None:
        job.state = JobState.FAILED
        job.error = error
        log.error("Crawl %s for %s failed: %s", job.id, job.domain, error)

    @asynccontextmanager
    async def _open_fetcher(self) -> AsyncIterator[Fetcher]:
        if self._limiter is None:
            self._limiter = asyncio.Semaphore(self.config.max_connections)
        async with self._session_factory() as session:
            yield Fetcher(session, self.config, self._limiter)

    def _default_session(self) -> ClientSession:
        return ClientSession(
            timeout=ClientTimeout(total=self.config.timeout),
            headers={"User-Agent": self.config.user_agent},
        )

    async def _crawl(self, job: CrawlJob) -> List[IndexedPage]:
        origins = origin_variants(job.domain, self.config.scheme)
        origin = origin_for(job.domain, self.config.scheme)
        log.info("Старт обхода: %s", origin)

        async with self._open_fetcher() as fetcher:
            robots = None
            if self.config.respect_robots:
                robots = await load_robots(fetcher, origin)
                if robots is not None:
                    fetcher.crawl_delay = robots.crawl_delay(self.config.user_agent)

            resolver = SitemapResolver(fetcher, max_sitemaps=self.config.max_sitemaps)
            urls = await resolver.resolve(origin, origins)
            job.total = len(urls)
            log.info("Sitemap returned %d URLs for %s", job.total, job.domain)

            extractor = PageExtractor(
                fetcher,
                content_selector=self.config.content_selector,
                robots=robots,
                user_agent=self.config.user_agent,
            )
            return await self._crawl_pages(job, urls, origins, extractor)

    async def _crawl_pages(
        self,
        job: CrawlJob,
        urls: List[str],
        origins: List[str],
        extractor: PageExtractor,
    ) -> List[IndexedPage]:
        queue: asyncio.Queue[Tuple[int, str]] = asyncio.Queue()
        for item in enumerate(urls):
            queue.put_nowait(item)
        results: Dict[int, IndexedPage] = {}

        workers = [
            asyncio.create_task(self._worker(job, queue, results, origins, extractor))
            for _ in range(min(self.config.concurrency, len(urls)))
        ]
        await queue.join()
        for w in workers:
            w.cancel()
        outcomes = await asyncio.gather(*workers, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception) and not isinstance(outcome, asyncio.CancelledError):
                raise outcome
        # sitemap order, whatever order the workers finished in
        return [results[i] for i in sorted(results)]

    async def _worker(
        self,
        job: CrawlJob,
        queue: asyncio.Queue[Tuple[int, str]],
        results: Dict[int, IndexedPage],
        origins: List[str],
        extractor: PageExtractor,
    ) -> None:
        while True:
            position, url = await queue.get()
            try:
                origin = match_origin(url, origins) or origins[0]
                page = await extractor.extract(url, origin)
                if page.is_empty():
                    log.debug("Skipping %s: no title, description or content", url)
                else:
                    results[position] = page
            except (NetworkError, ParseError) as exc:
                log.warning("Failed to scrape %s: %s", url, exc)
                job.failures.append(PageFailure(url, exc.describe()))
            except Exception as exc:
                # one broken page never takes the crawl down
                log.exception("Unexpected error while scraping %s", url)
                job.failures.append(PageFailure(url, f"{type(exc).__name__}: {exc}"))
            finally:
                job.advance()
                self.broadcaster.publish(job.id, ProgressEvent(job.id, job.done, job.total))
                log.debug("Progress %s: %d/%d", job.id, job.done, job.total)
                queue.task_done()
