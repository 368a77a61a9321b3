import pytest

from site_index.config import SearchConfig
from site_index.errors import ValidationError
from site_index.models import IndexedPage, SiteIndex
from site_index.search import QueryEngine, find_match


@pytest.fixture()
def query_engine() -> QueryEngine:
    return QueryEngine()


def test_title_match_ranks_first_with_highlight(query_engine, sample_index):
    results = query_engine.search(sample_index, "hello")

    assert [r.path for r in results] == ["/page/about", "/product/widget", "/blog/post"]
    assert [r.tier for r in results] == [0, 1, 2]
    assert results[0].title == "<mark>Hello</mark> World"
    assert results[0].category == "page"
    assert results[1].category == "product"
    assert results[2].category == "blog"


def test_unmatched_pages_are_excluded(query_engine, sample_index):
    results = query_engine.search(sample_index, "widget")
    assert [r.path for r in results] == ["/product/widget"]
    assert query_engine.search(sample_index, "nothing like this") == []


def test_ties_keep_index_order(query_engine):
    index = SiteIndex("example.com", [
        IndexedPage(path=f"/p{i}", title=f"Guide {i}") for i in range(5)
    ])
    assert [r.path for r in query_engine.search(index, "guide")] == [f"/p{i}" for i in range(5)]


def test_results_truncated_to_ten(query_engine):
    pages = [IndexedPage(path=f"/c{i}", content="match here") for i in range(8)]
    pages += [IndexedPage(path=f"/t{i}", title="match") for i in range(8)]
    results = query_engine.search(SiteIndex("example.com", pages), "match")

    assert len(results) == 10
    assert [r.path for r in results[:8]] == [f"/t{i}" for i in range(8)]
    assert [r.path for r in results[8:]] == ["/c0", "/c1"]


def test_snippet_window_with_ellipses(query_engine):
    content = "a" * 100 + "Needle" + "b" * 100
    index = SiteIndex("example.com", [IndexedPage(path="/x", content=content)])
    (result,) = query_engine.search(index, "needle")

    assert result.snippet == "..." + "a" * 40 + "<mark>Needle</mark>" + "b" * 40 + "..."


def test_snippet_without_truncation(query_engine):
    index = SiteIndex("example.com", [IndexedPage(path="/x", content="Say hello there")])
    (result,) = query_engine.search(index, "HELLO")
    assert result.snippet == "Say <mark>hello</mark> there"


def test_snippet_marks_first_occurrence_only(query_engine):
    index = SiteIndex("example.com", [IndexedPage(path="/x", content="go go go")])
    (result,) = query_engine.search(index, "go")
    assert result.snippet == "<mark>go</mark> go go"


def test_preview_snippet_when_content_does_not_match(query_engine):
    content = "x" * 200
    index = SiteIndex("example.com", [
        IndexedPage(path="/x", title="Pricing", content=content),
        IndexedPage(path="/y", title="Pricing plans", content=""),
    ])
    first, second = query_engine.search(index, "pricing")
    assert first.snippet == "x" * 160 + "..."
    assert second.snippet == ""


def test_title_without_match_is_left_alone(query_engine, sample_index):
    results = query_engine.search(sample_index, "widget is great")
    assert results[0].title == "Widget"


def test_search_is_idempotent(query_engine, sample_index):
    assert query_engine.search(sample_index, "hello") == query_engine.search(sample_index, "hello")


@pytest.mark.parametrize("query", ["", "   ", None])
def test_empty_query_rejected(query_engine, sample_index, query):
    with pytest.raises(ValidationError):
        query_engine.search(sample_index, query)


def test_custom_highlight_markers(sample_index):
    engine = QueryEngine(SearchConfig(highlight_open="[", highlight_close="]"))
    assert engine.search(sample_index, "world")[0].title == "Hello [World]"


def test_exact_mode_requires_literal_substring():
    assert find_match("Documentation", "documantation", exact=True) is None
    assert find_match("Read the Documentation", "documentation", exact=True) == (9, 22)


def test_fuzzy_mode_tolerates_typos():
    text = "Read the Documentation first"
    span = find_match(text, "documantation", exact=False)
    assert span is not None
    assert text[span[0]:span[1]] == "Documentation"
    assert find_match(text, "zzzzzzzz", exact=False) is None


def test_fuzzy_mode_keeps_short_queries_literal():
    assert find_match("cat", "cot", exact=False) is None


def test_fuzzy_search_uses_same_tiering(query_engine):
    index = SiteIndex("example.com", [
        IndexedPage(path="/a", content="See the Documentation"),
        IndexedPage(path="/b", title="Documentation home"),
    ])
    assert query_engine.search(index, "documantation") == []
    results = query_engine.search(index, "documantation", exact=False)
    assert [(r.path, r.tier) for r in results] == [("/b", 0), ("/a", 2)]
    assert results[0].title == "<mark>Documentation</mark> home"
    assert results[1].snippet == "See the <mark>Documentation</mark>"


def test_default_mode_comes_from_config(sample_index):
    fuzzy = QueryEngine(SearchConfig(exact_default=False))
    assert [r.path for r in fuzzy.search(sample_index, "widgit")] == ["/product/widget"]
    assert QueryEngine().search(sample_index, "widgit") == []


def test_page_text_is_escaped_around_highlight(query_engine):
    index = SiteIndex("example.com", [
        IndexedPage(
            path="/x",
            title="<img src=x onerror=alert(1)> Hello",
            content="Tom & Jerry say <b>hello</b>",
        ),
    ])
    (result,) = query_engine.search(index, "hello")
    assert result.title == "&lt;img src=x onerror=alert(1)&gt; <mark>Hello</mark>"
    assert result.snippet == "Tom &amp; Jerry say &lt;b&gt;<mark>hello</mark>&lt;/b&gt;"


def test_preview_snippet_is_escaped(query_engine):
    index = SiteIndex("example.com", [IndexedPage(path="/x", title="Hello", content="<script>x</script>")])
    assert query_engine.search(index, "hello")[0].snippet == "&lt;script&gt;x&lt;/script&gt;..."
