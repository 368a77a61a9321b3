# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable

import pytest
import pytest_asyncio
from aiohttp import web

from site_index.config import IndexerConfig
from site_index.engine import Engine
from site_index.models import IndexedPage, SiteIndex


@dataclass
class Route:
    body: str
    status: int = 200
    content_type: str = "text/html"
    delay: float = 0.0


class FakeSite:
    """Scriptable website served by a local aiohttp application."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.hits: Counter[str] = Counter()
        self.base = ""

    @property
    def domain(self) -> str:
        return self.base.split("://", 1)[1]

    def url(self, path: str) -> str:
        return f"{self.base}{path}"

    def add(self, path: str, body: str = "", **kwargs) -> None:
        self.routes[path] = Route(body, **kwargs)

    def add_page(self, path: str, title: str = "", description: str = "", main: str = "", **kwargs) -> None:
        meta = f'<meta name="description" content="{description}">' if description else ""
        html = (
            f"<html><head><title>{title}</title>{meta}</head>"
            f"<body><nav>Menu</nav><main>{main}</main><footer>Footer</footer></body></html>"
        )
        self.add(path, html, **kwargs)

    def set_sitemap(self, locs: Iterable[str], path: str = "/sitemap.xml") -> None:
        entries = "".join(
            f"<url><loc>{loc if '://' in loc else self.url(loc)}</loc></url>" for loc in locs
        )
        self.add(
            path,
            '<?xml version="1.0" encoding="UTF-8"?>'
            f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>',
            content_type="application/xml",
        )

    async def handle(self, request: web.Request) -> web.Response:
        route = self.routes.get(request.path)
        self.hits[request.path] += 1
        if route is None:
            return web.Response(status=404, text="not found")
        if route.delay:
            await asyncio.sleep(route.delay)
        return web.Response(text=route.body, status=route.status, content_type=route.content_type)


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def fake_site(unused_tcp_port: int) -> AsyncIterator[FakeSite]:
    site = FakeSite()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", site.handle)
    async for base in _serve_app(app, unused_tcp_port):
        site.base = base
        yield site


@pytest.fixture()
def config(tmp_path: Path) -> IndexerConfig:
    """Fast, local-friendly configuration: plain http, no retries, no throttling."""
    return IndexerConfig(
        scheme="http",
        data_dir=tmp_path / "indexes",
        timeout=5.0,
        rate_limit=1000.0,
        retry_times=0,
        backoff_base=0.0,
        concurrency=2,
        progress_wait=0.5,
    )


@pytest_asyncio.fixture
async def engine(config: IndexerConfig) -> AsyncIterator[Engine]:
    eng = Engine(config)
    yield eng
    await eng.aclose()


@pytest.fixture()
def sample_index() -> SiteIndex:
    return SiteIndex(
        "example.com",
        [
            IndexedPage(path="/blog/post", title="Release notes", description="What is new",
                        content="We shipped a hello world example today."),
            IndexedPage(path="/product/widget", title="Widget", description="Say hello to the widget",
                        content="The widget is great."),
            IndexedPage(path="/page/about", title="Hello World", description="About us",
                        content="Company history."),
        ],
    )
