"""
Data models for the SiteIndex pipeline.

``IndexedPage`` is a pydantic model because it crosses the durable boundary
(JSON index files) and needs validation on the way back in; the runtime-only
records (jobs, progress events, query results) are plain dataclasses.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

__all__ = [
    "IndexedPage",
    "SiteIndex",
    "JobState",
    "PageFailure",
    "CrawlJob",
    "ProgressEvent",
    "QueryResult",
]

_WS_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""
    return _WS_RE.sub(" ", text).strip()


class IndexedPage(BaseModel):
    """One extracted page; ``path`` is the URL without the site origin."""

    model_config = ConfigDict(frozen=True)

    # legacy index files store the path under "url"
    path: str = Field(..., validation_alias=AliasChoices("path", "url"))
    title: str = ""
    description: str = ""
    content: str = ""

    def is_empty(self) -> bool:
        return not any(collapse_whitespace(v) for v in (self.title, self.description, self.content))


_PAGES_ADAPTER = TypeAdapter(List[IndexedPage])


class SiteIndex:
    """Ordered, path-unique collection of :class:`IndexedPage` for one domain.

    A page added under an existing path replaces the earlier entry but keeps
    its position in the index.
    """

    __slots__ = ("domain", "_pages")

    def __init__(self, domain: str, pages: Iterable[IndexedPage] = ()) -> None:
        self.domain = domain
        self._pages: Dict[str, IndexedPage] = {}
        for page in pages:
            self.add(page)

    def add(self, page: IndexedPage) -> None:
        self._pages[page.path] = page

    @property
    def pages(self) -> List[IndexedPage]:
        return list(self._pages.values())

    def __iter__(self) -> Iterator[IndexedPage]:
        return iter(self._pages.values())

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, path: object) -> bool:
        return path in self._pages

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SiteIndex):
            return NotImplemented
        return self.domain == other.domain and self.pages == other.pages

    def __repr__(self) -> str:
        return f"<SiteIndex domain={self.domain!r} pages={len(self)}>"

    # -- durable format: JSON array of IndexedPage objects -------------------
    def to_json(self, *, indent: Optional[int] = 2) -> str:
        return json.dumps(
            [p.model_dump() for p in self], ensure_ascii=False, indent=indent
        )

    @classmethod
    def from_json(cls, domain: str, data: str | bytes) -> SiteIndex:
        """Deserialize; raises :class:`pydantic.ValidationError` on malformed input."""
        return cls(domain, _PAGES_ADAPTER.validate_json(data))


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass(slots=True, frozen=True)
class PageFailure:
    """A page skipped during a crawl and the reason why."""

    url: str
    reason: str


@dataclass(slots=True)
class CrawlJob:
    """State of one crawl run. ``done`` only ever grows."""

    id: str
    domain: str
    total: int = 0
    done: int = 0
    state: JobState = JobState.PENDING
    error: Optional[str] = None
    indexed: int = 0
    failures: List[PageFailure] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return not self.state.is_terminal

    def advance(self) -> int:
        self.done = min(self.done + 1, self.total)
        return self.done

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "domain": self.domain,
            "total": self.total,
            "done": self.done,
            "state": self.state.value,
            "error": self.error,
            "indexed": self.indexed,
            "failures": [{"url": f.url, "reason": f.reason} for f in self.failures],
        }


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """Progress of a job; ``final`` marks the terminal event of the stream."""

    job_id: str
    done: int
    total: int
    final: bool = False
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"done": self.done, "total": self.total}
        if self.error:
            data["error"] = self.error
        return data


@dataclass(slots=True, frozen=True)
class QueryResult:
    """One ranked search hit; ``title`` and ``snippet`` may contain highlight markup."""

    path: str
    title: str
    snippet: str
    category: str
    tier: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {"url": self.path, "title": self.title, "snippet": self.snippet, "type": self.category}
