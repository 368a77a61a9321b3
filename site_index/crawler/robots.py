"""
Parser and checker for robots.txt rules (RFC 9309).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from site_index.crawler.fetcher import Fetcher
from site_index.errors import NetworkError
from site_index.logger import get_logger

__all__ = ["RobotsTxtRules", "load_robots"]

log = get_logger("robots")


@dataclass
class _Group:
    agents: List[str] = field(default_factory=list)
    directives: List[Tuple[str, str]] = field(default_factory=list)
    crawl_delay: Optional[float] = None


class RobotsTxtRules:
    """
    Parsed robots.txt.
    An empty Disallow allows every path; the longest matching rule wins,
    Allow wins a tie.
    """
    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str) -> None:
        self._groups: List[_Group] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group.directives:
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.crawl_delay

    def _parse(self, text: str) -> None:
        current: Optional[_Group] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                if current is None or (current.agents and (current.directives or current.crawl_delay is not None)):
                    current = _Group()
                    self._groups.append(current)
                current.agents.append(val.lower())
                continue
            if key not in ("allow", "disallow", "crawl-delay"):
                continue
            if current is None:
                current = _Group(agents=["*"])
                self._groups.append(current)
            if key == "crawl-delay":
                try:
                    current.crawl_delay = float(val)
                except ValueError:
                    log.debug("Ignoring malformed Crawl-delay %r", val)
            elif val:
                current.directives.append((key, val))

    def _match_group(self, user_agent: str) -> Optional[_Group]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group.agents):
                return group
        for group in self._groups:
            if "*" in group.agents:
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))


async def load_robots(fetcher: Fetcher, origin: str) -> Optional[RobotsTxtRules]:
    """Fetch ``<origin>/robots.txt``; a missing or unreachable file allows everything."""
    try:
        doc = await fetcher.fetch(f"{origin}/robots.txt")
    except NetworkError as exc:
        log.debug("robots.txt unavailable for %s: %s", origin, exc)
        return None
    return RobotsTxtRules(doc.text)
