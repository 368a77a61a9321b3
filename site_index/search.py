"""site_index.search: ranking, highlighting and snippets over a SiteIndex.

Ranking is by *tier*, the first field that matches the query:

====  ===========
tier  field
====  ===========
0     title
1     description
2     content
====  ===========

Pages matching no field are left out. Ties keep index order, and only the
first ``max_results`` hits are returned.

Two match predicates exist. *Exact* is a case-insensitive substring test.
*Fuzzy* accepts the literal substring too and otherwise falls back to the
best approximately matching window of the text, scored with
:class:`difflib.SequenceMatcher`. Both return the span that gets highlighted,
so tiering, highlighting and snippets do not depend on the mode.

Highlighted titles and snippets are HTML fragments: page text is escaped with
markupsafe and only the configured highlight markers are left as markup.
"""
from __future__ import annotations

import re
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from markupsafe import Markup, escape

from site_index.config import SearchConfig
from site_index.domain import classify_path
from site_index.errors import ValidationError
from site_index.models import IndexedPage, QueryResult, SiteIndex, collapse_whitespace

__all__ = ["QueryEngine", "find_match"]

Span = Tuple[int, int]

_WORD_START_RE = re.compile(r"\b\w")
#: shorter queries are always matched literally
MIN_FUZZY_LENGTH = 4
ELLIPSIS = "..."


def _fuzzy_span(text: str, query: str, threshold: float) -> Optional[Span]:
    size = len(query)
    if len(text) < size - 1:
        return None
    matcher = SequenceMatcher(autojunk=False)
    # seq2 is cached by SequenceMatcher, so keep the query there
    matcher.set_seq2(query)
    best: Optional[Span] = None
    best_ratio = threshold
    for m in _WORD_START_RE.finditer(text):
        start = m.start()
        window = text[start:start + size]
        matcher.set_seq1(window)
        if matcher.real_quick_ratio() < best_ratio or matcher.quick_ratio() < best_ratio:
            continue
        ratio = matcher.ratio()
        if ratio >= best_ratio and (best is None or ratio > best_ratio):
            best, best_ratio = (start, start + len(window)), ratio
    return best


def find_match(text: str, query: str, *, exact: bool = True, threshold: float = 0.8) -> Optional[Span]:
    """Return the ``(start, end)`` span of *query* in *text*, or None.

    *query* must already be lower-cased.
    """
    if not text:
        return None
    lowered = text.lower()
    if len(lowered) != len(text):
        # keep offsets aligned with the original text (e.g. "İ" lowers to two chars)
        lowered = "".join(c.lower()[0] for c in text)
    pos = lowered.find(query)
    if pos >= 0:
        return pos, pos + len(query)
    if exact or len(query) < MIN_FUZZY_LENGTH:
        return None
    return _fuzzy_span(lowered, query, threshold)


class QueryEngine:
    """Scores, ranks and highlights matches against a loaded index."""

    def __init__(self, config: Optional[SearchConfig] = None) -> None:
        self.config = config or SearchConfig()

    def search(self, index: SiteIndex, query: str, exact: Optional[bool] = None) -> List[QueryResult]:
        needle = collapse_whitespace(query or "").lower()
        if not needle:
            raise ValidationError("query must not be empty")
        if exact is None:
            exact = self.config.exact_default

        hits: List[Tuple[int, int, IndexedPage, Optional[Span], Optional[Span]]] = []
        for position, page in enumerate(index):
            title_span = self._match(page.title, needle, exact)
            content_span = self._match(page.content, needle, exact)
            if title_span is not None:
                tier = 0
            elif self._match(page.description, needle, exact) is not None:
                tier = 1
            elif content_span is not None:
                tier = 2
            else:
                continue
            hits.append((tier, position, page, title_span, content_span))

        hits.sort(key=lambda h: (h[0], h[1]))
        return [
            QueryResult(
                path=page.path,
                title=self.highlight(page.title, title_span),
                snippet=self.snippet(page.content, content_span),
                category=classify_path(page.path),
                tier=tier,
            )
            for tier, _, page, title_span, content_span in hits[: self.config.max_results]
        ]

    def _match(self, text: str, needle: str, exact: bool) -> Optional[Span]:
        return find_match(text, needle, exact=exact, threshold=self.config.fuzzy_threshold)

    def _mark(self, text: str) -> Markup:
        return Markup(self.config.highlight_open) + text + Markup(self.config.highlight_close)

    def highlight(self, text: str, span: Optional[Span]) -> str:
        """Escape *text* and wrap ``text[span]`` in highlight markers."""
        if span is None:
            return str(escape(text))
        start, end = span
        return str(escape(text[:start]) + self._mark(text[start:end]) + text[end:])

    def snippet(self, content: str, span: Optional[Span]) -> str:
        """Excerpt of *content* around *span*, or its beginning when there is no match."""
        if span is None:
            if not content:
                return ""
            return str(escape(content[: self.config.preview_length])) + ELLIPSIS
        start, end = span
        radius = self.config.snippet_radius
        lo = max(start - radius, 0)
        hi = min(end + radius, len(content))
        excerpt = escape(content[lo:start]) + self._mark(content[start:end]) + content[end:hi]
        return (ELLIPSIS if lo > 0 else "") + str(excerpt) + (ELLIPSIS if hi < len(content) else "")
