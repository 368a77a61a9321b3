# File: site_index/parser/sitemap_parser.py
"""site_index.parser.sitemap_parser: Модуль для парсинга sitemap.xml и извлечения URL."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union

from lxml import etree

from site_index.errors import ParseError

__all__ = ["ParsedSitemap", "parse_sitemap"]

_ROOTS = ("urlset", "sitemapindex")


@dataclass(slots=True)
class ParsedSitemap:
    """Результат разбора: адреса страниц (<url><loc>) и вложенных sitemap (<sitemap><loc>)."""

    urls: List[str] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)


def _locs(root: etree._Element, parent: str) -> List[str]:
    locs = root.findall(f"{{*}}{parent}/{{*}}loc")
    return [loc.text.strip() for loc in locs if loc.text and loc.text.strip()]


def parse_sitemap(xml_content: Union[str, bytes]) -> ParsedSitemap:
    """Разбирает XML content sitemap и возвращает ParsedSitemap.

    Args:
        xml_content: содержимое sitemap.xml (str или bytes).

    Raises:
        ParseError: XML некорректен или корневой элемент не urlset/sitemapindex.

    Пример:
    ```python
    from site_index.parser.sitemap_parser import parse_sitemap

    with open('sitemap.xml', 'rb') as f:
        sitemap = parse_sitemap(f.read())
    print(sitemap.urls)
    ```
    """
    if isinstance(xml_content, str):
        xml_content = xml_content.encode("utf-8")
    if not xml_content.strip():
        raise ParseError("empty sitemap")

    parser = etree.XMLParser(ns_clean=True, recover=False, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml_content, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ParseError(f"malformed sitemap XML: {exc}") from exc

    tag = etree.QName(root).localname
    if tag not in _ROOTS:
        raise ParseError(f"unexpected sitemap root element <{tag}>")
    if tag == "sitemapindex":
        return ParsedSitemap(sitemaps=_locs(root, "sitemap"))
    return ParsedSitemap(urls=_locs(root, "url"))
