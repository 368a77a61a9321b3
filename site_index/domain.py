# File: site_index/domain.py
"""site_index.domain: Нормализация доменов, работа с origin и путями страниц."""

from __future__ import annotations

import re
from typing import Collection, Iterable, List, Optional, Sequence

from site_index.errors import ValidationError
from site_index.logger import logger

__all__: Sequence[str] = (
    "normalize_domain",
    "origin_for",
    "origin_variants",
    "match_origin",
    "strip_origin",
    "safe_key",
    "classify_path",
    "remove_duplicates",
)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")
_HOST_RE = re.compile(r"^[a-z0-9]([a-z0-9.-]*[a-z0-9])?(:\d{1,5})?$")
_UNSAFE_RE = re.compile(r"[^a-z0-9.-]", re.IGNORECASE)

# порядок проверки важен: первый совпавший сегмент определяет категорию
_CATEGORIES: Sequence[tuple[str, Collection[str]]] = (
    ("blog", ("blog",)),
    ("product", ("product",)),
    ("page", ("page", "pages")),
)


def normalize_domain(raw: Optional[str]) -> str:
    """Приводит домен к каноническому виду: без схемы, пути и ``www.``, в нижнем регистре.

    ``"https://WWW.Example.com/blog?x=1"`` -> ``"example.com"``.
    Порт сохраняется (``"localhost:8080"``).
    """
    if raw is None or not isinstance(raw, str):
        raise ValidationError("domain is required")
    value = raw.strip().lower()
    value = _SCHEME_RE.sub("", value)
    value = re.split(r"[/?#]", value, maxsplit=1)[0]
    value = value.rstrip(".")
    if value.startswith("www."):
        value = value[4:]
    if not value or not _HOST_RE.match(value):
        raise ValidationError(f"malformed domain: {raw!r}")
    return value


def origin_for(domain: str, scheme: str = "https") -> str:
    """Возвращает origin сайта, например ``https://example.com``."""
    return f"{scheme}://{domain}"


def origin_variants(domain: str, scheme: str = "https") -> List[str]:
    """Origin домена и его ``www.``-вариант: sitemap часто ссылается на канонический хост с www."""
    return [origin_for(domain, scheme), origin_for(f"www.{domain}", scheme)]


def match_origin(url: str, origins: Iterable[str]) -> Optional[str]:
    """Возвращает origin, которым начинается *url*, или None.

    Совпадение засчитывается только на границе хоста, поэтому
    ``https://example.com.evil.org`` не считается страницей ``https://example.com``.
    """
    for origin in origins:
        if url.startswith(origin) and url[len(origin):len(origin) + 1] in ("", "/", "?", "#"):
            return origin
    return None


def strip_origin(url: str, origin: str) -> str:
    """Удаляет префикс origin из URL, оставляя путь страницы (``/`` для корня)."""
    path = url[len(origin):] if url.startswith(origin) else url
    if not path.startswith("/"):
        path = "/" + path
    return path


def safe_key(domain: str) -> str:
    """Безопасное для файловой системы имя индекса домена."""
    return _UNSAFE_RE.sub("_", domain)


def classify_path(path: str) -> str:
    """Определяет тип страницы по сегментам пути: blog, product, page или other."""
    segments = [s.lower() for s in path.split("?", 1)[0].split("/") if s]
    for category, names in _CATEGORIES:
        if any(seg in names for seg in segments):
            return category
    return "other"


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
