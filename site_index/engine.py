# File: site_index/engine.py
"""site_index.engine: Фасад, связывающий хранилище индексов, обходчик и поисковый движок."""

from __future__ import annotations

import uuid
from typing import List, Optional

from site_index.config import IndexerConfig
from site_index.crawler.orchestrator import CrawlOrchestrator, SessionFactory
from site_index.domain import normalize_domain
from site_index.errors import IndexNotReadyError, NetworkError, NotFoundError
from site_index.logger import logger
from site_index.models import CrawlJob, JobState, QueryResult, SiteIndex
from site_index.progress import ProgressBroadcaster
from site_index.search import QueryEngine
from site_index.store import IndexStore

__all__ = ["Engine"]


class Engine:
    """Фасад для CLI, HTTP-сервера и тестов: обход доменов и поиск по индексам."""

    def __init__(self, config: IndexerConfig, session_factory: Optional[SessionFactory] = None) -> None:
        self.config = config
        self.store = IndexStore(config.data_dir)
        self.broadcaster = ProgressBroadcaster()
        self.orchestrator = CrawlOrchestrator(config, self.store, self.broadcaster, session_factory)
        self.query_engine = QueryEngine(config.search)

    def start_crawl(self, domain: str, job_id: Optional[str] = None) -> CrawlJob:
        """Запускает обход домена в фоне (идемпотентно по job_id)."""
        return self.orchestrator.start_crawl(domain, job_id or uuid.uuid4().hex)

    def get_job(self, job_id: str) -> CrawlJob:
        return self.orchestrator.get_job(job_id)

    async def crawl(self, domain: str, job_id: Optional[str] = None) -> CrawlJob:
        """Обходит домен и дожидается завершения задачи."""
        job = self.start_crawl(domain, job_id)
        return await self.orchestrator.wait(job.id)

    async def load_index(self, domain: str) -> SiteIndex:
        """Возвращает индекс домена или бросает NotFoundError / IndexNotReadyError.

        При ``crawl_on_miss`` отсутствующий индекс строится обходом.
        """
        key = normalize_domain(domain)
        index = self.store.get(key)
        if index is not None:
            return index

        active = self.orchestrator.active_job(key)
        if active is not None:
            raise IndexNotReadyError(f"indexing of {key} is in progress (job {active.id})")
        if not self.config.crawl_on_miss:
            raise NotFoundError(f"no index for {key}")

        logger.info("No index for %s, crawling on demand", key)
        job = await self.crawl(key)
        if job.state is not JobState.COMPLETED:
            raise NetworkError(f"could not index {key}: {job.error}")
        index = self.store.get(key)
        if index is None:
            raise NotFoundError(f"no index for {key}")
        return index

    async def search(self, domain: str, query: str, exact: Optional[bool] = None) -> List[QueryResult]:
        """Поиск по индексу домена; пустой список означает "нет совпадений", а не "нет индекса"."""
        index = await self.load_index(domain)
        results = self.query_engine.search(index, query, exact)
        logger.debug("Search %r on %s: %d result(s)", query, index.domain, len(results))
        return results

    async def aclose(self) -> None:
        await self.orchestrator.aclose()
