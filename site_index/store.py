"""
Index store: two-tier (memory + JSON files) cache of per-domain site indexes.

``put`` is the only write path. It writes the durable tier first and only
then swaps the memory tier, so the JSON file on disk is never older than
the in-memory copy.
"""
from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from site_index.domain import normalize_domain, safe_key
from site_index.errors import ParseError
from site_index.logger import get_logger
from site_index.models import SiteIndex

__all__ = ["IndexStore"]

log = get_logger("store")


class IndexStore:
    """Memory tier in front of one ``<safe_key(domain)>.json`` file per domain."""

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self._memory: Dict[str, SiteIndex] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def path_for(self, domain: str) -> Path:
        return self.data_dir / f"{safe_key(normalize_domain(domain))}.json"

    def get(self, domain: str) -> Optional[SiteIndex]:
        """Return the index for *domain* or None when neither tier has it.

        A durable hit populates the memory tier. A corrupt file raises
        :class:`ParseError`.
        """
        key = normalize_domain(domain)
        cached = self._memory.get(key)
        if cached is not None:
            return cached

        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        try:
            index = SiteIndex.from_json(key, raw)
        except PydanticValidationError as exc:
            raise ParseError(f"corrupt index file {path}: {exc.error_count()} error(s)") from exc

        log.debug("Loaded index for %s from %s (%d pages)", key, path, len(index))
        self._memory[key] = index
        return index

    async def put(self, domain: str, index: SiteIndex) -> None:
        """Replace the index of *domain* in both tiers (durable first)."""
        key = normalize_domain(domain)
        if index.domain != key:
            index = SiteIndex(key, index)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            path = self.path_for(key)
            await asyncio.to_thread(self._write_atomic, path, index.to_json())
            self._memory[key] = index
        log.info("Stored index for %s: %d pages -> %s", key, len(index), path)

    def domains(self) -> List[str]:
        """Normalized domains available in either tier.

        Durable entries are reported by file name, which equals the domain
        for every domain made of ``[a-z0-9.-]`` characters.
        """
        found = set(self._memory)
        if self.data_dir.is_dir():
            found.update(p.stem for p in self.data_dir.glob("*.json"))
        return sorted(found)

    def evict(self, domain: str) -> None:
        """Drop the memory copy; the next ``get`` reloads from disk."""
        self._memory.pop(normalize_domain(domain), None)

    @staticmethod
    def _write_atomic(path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
