# File: tests/test_cli.py
"""Тесты для CLI (`site_index/cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `crawl`, `search`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json

import pytest
from click.testing import CliRunner

from site_index import __version__
from site_index.cli import cli
from site_index.logger import configure
from site_index.models import IndexedPage, SiteIndex


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI перенастраивает логгер на поток CliRunner; возвращаем stdout после теста."""
    yield
    configure(level="INFO")


@pytest.fixture()
def cfg_file(tmp_path):
    """JSON-конфиг с локальной папкой индексов и без ретраев."""
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "scheme": "http",
                "data_dir": str(tmp_path / "indexes"),
                "timeout": 5.0,
                "rate_limit": 1000.0,
                "retry_times": 0,
                "backoff_base": 0.0,
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def stored_index(tmp_path):
    index = SiteIndex(
        "example.com",
        [
            IndexedPage(path="/blog/pricing-update", title="Pricing update",
                        content="Our pricing changes next month."),
            IndexedPage(path="/about", title="About", content="A small shop."),
        ],
    )
    data_dir = tmp_path / "indexes"
    data_dir.mkdir()
    (data_dir / "example.com.json").write_text(index.to_json(), encoding="utf-8")
    return index


def invoke(*args):
    return CliRunner().invoke(cli, ["--log-level", "ERROR", *args])


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert f"SiteIndex, version {__version__}" in result.output


def test_show_config(cfg_file, tmp_path):
    result = invoke("--config", str(cfg_file), "config")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["scheme"] == "http"
    assert data["data_dir"] == str(tmp_path / "indexes")
    assert data["search"]["max_results"] == 10


def test_invalid_config_fails(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"concurrency": 0}), encoding="utf-8")
    result = invoke("--config", str(bad), "config")
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_search_stdout(cfg_file, stored_index):
    result = invoke("--config", str(cfg_file), "search", "WWW.Example.com", "pricing")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == {
        "results": [
            {
                "url": "/blog/pricing-update",
                "title": "<mark>Pricing</mark> update",
                "snippet": "Our <mark>pricing</mark> changes next month.",
                "type": "blog",
            }
        ]
    }


def test_search_without_matches_prints_empty_list(cfg_file, stored_index):
    result = invoke("--config", str(cfg_file), "search", "example.com", "refund")
    assert result.exit_code == 0
    assert json.loads(result.output) == {"results": []}


def test_search_unindexed_domain(cfg_file):
    result = invoke("--config", str(cfg_file), "search", "unknown.org", "pricing")
    assert result.exit_code == 1
    assert "NotFoundError" in result.output


def test_search_reports(cfg_file, stored_index, tmp_path):
    json_out = tmp_path / "out" / "results.json"
    html_out = tmp_path / "out" / "results.html"
    result = invoke(
        "--config", str(cfg_file), "search", "example.com", "pricing",
        "--json", str(json_out), "--html", str(html_out),
    )
    assert result.exit_code == 0
    assert f"JSON report: {json_out}" in result.output
    assert f"HTML report: {html_out}" in result.output

    saved = json.loads(json_out.read_text(encoding="utf-8"))
    assert saved["results"][0]["url"] == "/blog/pricing-update"
    html = html_out.read_text(encoding="utf-8")
    assert "<mark>Pricing</mark> update" in html
    assert 'href="/blog/pricing-update"' in html


def test_crawl_unreachable_site_fails(cfg_file):
    result = invoke("--config", str(cfg_file), "crawl", "127.0.0.1:1", "--job-id", "j1")
    assert result.exit_code == 1
    assert "0/0" in result.output
    assert "NetworkError" in result.output


@pytest.mark.asyncio()
async def test_crawl_then_search(fake_site, cfg_file):
    fake_site.add_page("/blog/a", title="Alpha", main="first post")
    fake_site.add_page("/blog/b", title="Beta", main="second post")
    fake_site.add("/blog/c", "gone", status=404)
    fake_site.set_sitemap(["/blog/a", "/blog/b", "/blog/c"])

    # the CLI runs its own event loop, the fake site keeps serving on this one
    result = await asyncio.to_thread(
        invoke, "--config", str(cfg_file), "crawl", fake_site.domain, "--job-id", "cli-job"
    )
    assert result.exit_code == 0, result.output
    assert "3/3" in result.output
    assert f"Indexed 2 of 3 pages for {fake_site.domain} (1 skipped)" in result.output

    result = await asyncio.to_thread(
        invoke, "--config", str(cfg_file), "search", fake_site.domain, "second"
    )
    assert result.exit_code == 0
    assert [r["url"] for r in json.loads(result.output)["results"]] == ["/blog/b"]


def test_html_report_escapes_page_markup(cfg_file, tmp_path):
    index = SiteIndex(
        "example.com",
        [IndexedPage(path="/x", title="<img src=x onerror=alert(1)> Hello", content="<b>hello</b>")],
    )
    data_dir = tmp_path / "indexes"
    data_dir.mkdir()
    (data_dir / "example.com.json").write_text(index.to_json(), encoding="utf-8")
    html_out = tmp_path / "report.html"

    result = invoke("--config", str(cfg_file), "search", "example.com", "hello", "--html", str(html_out))
    assert result.exit_code == 0

    html = html_out.read_text(encoding="utf-8")
    assert "<img src=x" not in html
    assert "&lt;img src=x onerror=alert(1)&gt; <mark>Hello</mark>" in html
    assert "&lt;b&gt;<mark>hello</mark>&lt;/b&gt;" in html
