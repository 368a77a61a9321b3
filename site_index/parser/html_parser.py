# === FILE: site_index/parser/html_parser.py ===
"""HTML extraction for SiteIndex.

:func:`extract_page` turns raw markup into the three searchable text fields
of an index entry:

* title: text of the first ``<title>``, trimmed, or ``""``.
* description: ``content`` of ``<meta name="description">``, trimmed, or ``""``.
* content: visible text of the main content region (``main`` by default),
  with every whitespace run collapsed to one space.

Pages without a matching content region get an empty ``content``; they still
make it into the index when the title or description is non-empty.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_index.models import collapse_whitespace

__all__: Sequence[str] = ("ParsedPage", "extract_page")

_INVISIBLE = ["script", "style", "noscript", "template"]


@dataclass(slots=True)
class ParsedPage:
    """Searchable fields extracted from one HTML document."""

    title: str
    description: str
    content: str


def _meta_description(soup: BeautifulSoup) -> str:
    for tag in soup.find_all("meta"):
        if not isinstance(tag, Tag):
            continue
        name = tag.get("name")
        if isinstance(name, str) and name.strip().lower() == "description":
            value = tag.get("content")
            return value.strip() if isinstance(value, str) else ""
    return ""


def _outermost(regions: list[Tag]) -> list[Tag]:
    """Drop matches nested inside another match so their text is kept once."""
    chosen = {id(r) for r in regions}
    return [r for r in regions if not any(id(p) in chosen for p in r.parents)]


def extract_page(html: str, content_selector: str = "main") -> ParsedPage:
    """Parse *html* and return its :class:`ParsedPage`.

    Parameters
    ----------
    html
        Page markup.
    content_selector
        CSS selector of the main content region; text of every matching
        element is joined in document order.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if title_tag else ""

    description = _meta_description(soup)

    regions = _outermost(soup.select(content_selector))
    for region in regions:
        for element in region(_INVISIBLE):
            element.decompose()
    content = collapse_whitespace(" ".join(s for region in regions for s in region.stripped_strings))

    return ParsedPage(title=title, description=description, content=content)
