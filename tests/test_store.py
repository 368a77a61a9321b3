import json

import pytest

from site_index.errors import ParseError
from site_index.models import IndexedPage, SiteIndex
from site_index.store import IndexStore


def make_index(domain="example.com", *paths):
    return SiteIndex(domain, [IndexedPage(path=p, title=f"Title {p}") for p in paths])


def test_get_miss(tmp_path):
    store = IndexStore(tmp_path)
    assert store.get("example.com") is None


@pytest.mark.asyncio()
async def test_round_trip_through_durable_tier(tmp_path):
    index = make_index("example.com", "/c", "/a", "/b")
    await IndexStore(tmp_path).put("example.com", index)

    reloaded = IndexStore(tmp_path).get("example.com")
    assert reloaded is not None
    assert [p.path for p in reloaded] == ["/c", "/a", "/b"]
    assert reloaded == index


@pytest.mark.asyncio()
async def test_put_writes_json_array_named_by_safe_key(tmp_path):
    store = IndexStore(tmp_path)
    await store.put("https://www.Example.com", make_index("example.com", "/"))

    path = tmp_path / "example.com.json"
    assert store.path_for("example.com") == path
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == [{"path": "/", "title": "Title /", "description": "", "content": ""}]
    assert list(tmp_path.glob("*.tmp")) == []


@pytest.mark.asyncio()
async def test_lookup_uses_normalized_domain(tmp_path):
    store = IndexStore(tmp_path)
    await store.put("example.com", make_index("example.com", "/x"))
    assert store.get("HTTPS://WWW.EXAMPLE.COM/") is store.get("example.com")


@pytest.mark.asyncio()
async def test_put_is_full_replace(tmp_path):
    store = IndexStore(tmp_path)
    await store.put("example.com", make_index("example.com", "/old", "/kept"))
    await store.put("example.com", make_index("example.com", "/kept", "/new"))

    assert [p.path for p in store.get("example.com")] == ["/kept", "/new"]
    store.evict("example.com")
    assert [p.path for p in store.get("example.com")] == ["/kept", "/new"]


@pytest.mark.asyncio()
async def test_memory_tier_is_populated_on_durable_hit(tmp_path):
    await IndexStore(tmp_path).put("example.com", make_index("example.com", "/a"))
    store = IndexStore(tmp_path)
    first = store.get("example.com")
    (tmp_path / "example.com.json").unlink()
    assert store.get("example.com") is first


def test_reads_legacy_url_key(tmp_path):
    legacy = [{"url": "/about", "title": "About", "description": "", "content": "Text"}]
    (tmp_path / "example.com.json").write_text(json.dumps(legacy), encoding="utf-8")
    index = IndexStore(tmp_path).get("example.com")
    assert index.pages == [IndexedPage(path="/about", title="About", content="Text")]


@pytest.mark.parametrize("payload", ["{not json", '{"path": "/"}', '[{"title": "no path"}]'])
def test_corrupt_file_raises_parse_error(tmp_path, payload):
    (tmp_path / "example.com.json").write_text(payload, encoding="utf-8")
    with pytest.raises(ParseError):
        IndexStore(tmp_path).get("example.com")


@pytest.mark.asyncio()
async def test_domains_lists_both_tiers(tmp_path):
    store = IndexStore(tmp_path)
    await store.put("b.com", make_index("b.com", "/"))
    (tmp_path / "a.com.json").write_text("[]", encoding="utf-8")
    assert store.domains() == ["a.com", "b.com"]


def test_site_index_last_write_wins_keeps_position():
    index = SiteIndex("example.com")
    index.add(IndexedPage(path="/a", title="first"))
    index.add(IndexedPage(path="/b", title="b"))
    index.add(IndexedPage(path="/a", title="second"))
    assert [(p.path, p.title) for p in index] == [("/a", "second"), ("/b", "b")]
    assert len(index) == 2
    assert "/a" in index


def test_indexed_page_is_empty():
    assert IndexedPage(path="/", title="  ", description="\n\t", content="").is_empty()
    assert not IndexedPage(path="/", content=" x ").is_empty()
