"""
HTTP surface of SiteIndex (aiohttp.web).

Routes
------
``POST /admin/index``               start a crawl: ``{"domain": ..., "id": ...}``
``GET  /admin/jobs/{job_id}``       crawl job state
``GET  /admin/progress/{job_id}``   NDJSON progress stream ``{"done", "total"}``
``POST /api/search``                ``{"domain", "query", "exact"?}`` -> ``{"results": [...]}``

Authentication, CORS and the allow-listed domain registry live in front of
this application and are not handled here.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Type, TypeVar

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from site_index.config import IndexerConfig
from site_index.engine import Engine
from site_index.errors import NotFoundError, SiteIndexError, ValidationError
from site_index.logger import get_logger
from site_index.models import ProgressEvent

__all__ = ["ENGINE_KEY", "create_app", "run_server"]

log = get_logger("server")

ENGINE_KEY = web.AppKey("engine", Engine)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class CrawlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domain: str = Field(..., min_length=1)
    job_id: str = Field(..., min_length=1, alias="id")


class SearchRequest(BaseModel):
    domain: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1)
    exact: Optional[bool] = None


async def _parse(request: web.Request, model: Type[_ModelT]) -> _ModelT:
    try:
        payload: Any = await request.json()
    except json.JSONDecodeError as exc:
        raise ValidationError(f"request body is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ValidationError(f"missing or malformed field(s): {fields}") from exc


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    try:
        return await handler(request)
    except SiteIndexError as exc:
        if exc.status >= 500:
            log.error("%s %s -> %s", request.method, request.path, exc.describe())
        return web.json_response(
            {"error": exc.message or type(exc).__name__, "type": type(exc).__name__},
            status=exc.status,
        )


async def trigger_crawl(request: web.Request) -> web.Response:
    body = await _parse(request, CrawlRequest)
    log.info("Manual index triggered for %s, job %s", body.domain, body.job_id)
    job = request.app[ENGINE_KEY].start_crawl(body.domain, body.job_id)
    return web.json_response({"job": job.as_dict()}, status=202)


async def job_state(request: web.Request) -> web.Response:
    job = request.app[ENGINE_KEY].get_job(request.match_info["job_id"])
    return web.json_response(job.as_dict())


async def _write_event(resp: web.StreamResponse, event: ProgressEvent) -> None:
    await resp.write((json.dumps(event.as_dict()) + "\n").encode("utf-8"))


def _job_exists(engine: Engine, job_id: str) -> bool:
    try:
        engine.get_job(job_id)
    except NotFoundError:
        return False
    return True


async def progress_stream(request: web.Request) -> web.StreamResponse:
    """Stream progress of a job.

    Subscribing before the job exists is allowed; the stream then waits up to
    ``progress_wait`` seconds for the job to show up.
    """
    engine = request.app[ENGINE_KEY]
    job_id = request.match_info["job_id"]

    resp = web.StreamResponse(
        headers={"Content-Type": "application/x-ndjson", "Cache-Control": "no-cache"}
    )
    await resp.prepare(request)

    # no await between the state check and subscribe
    try:
        job = engine.get_job(job_id)
    except NotFoundError:
        job = None
    if job is not None and job.state.is_terminal:
        await _write_event(resp, ProgressEvent(job.id, job.done, job.total, final=True, error=job.error))
        await resp.write_eof()
        return resp

    subscription = engine.broadcaster.subscribe(job_id)
    try:
        if job is None:
            try:
                first = await asyncio.wait_for(anext(subscription, None), engine.config.progress_wait)
            except asyncio.TimeoutError:
                first = None
            if first is not None:
                await _write_event(resp, first)
            elif not subscription.finished and not _job_exists(engine, job_id):
                log.info("Progress stream for unknown job %s timed out", job_id)
                error = NotFoundError(f"unknown job {job_id}").describe()
                await _write_event(resp, ProgressEvent(job_id, 0, 0, final=True, error=error))
                await resp.write_eof()
                return resp
        async for event in subscription:
            await _write_event(resp, event)
    except ConnectionResetError:
        log.debug("Progress client for job %s disconnected", job_id)
        return resp
    finally:
        engine.broadcaster.unsubscribe(subscription)
    await resp.write_eof()
    return resp


async def search(request: web.Request) -> web.Response:
    body = await _parse(request, SearchRequest)
    results = await request.app[ENGINE_KEY].search(body.domain, body.query, body.exact)
    return web.json_response({"results": [r.as_dict() for r in results]})


async def _close_engine(app: web.Application) -> None:
    await app[ENGINE_KEY].aclose()


def create_app(engine: Engine) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[ENGINE_KEY] = engine
    app.router.add_post("/admin/index", trigger_crawl)
    app.router.add_get("/admin/jobs/{job_id}", job_state)
    app.router.add_get("/admin/progress/{job_id}", progress_stream)
    app.router.add_post("/api/search", search)
    app.on_cleanup.append(_close_engine)
    return app


def run_server(config: IndexerConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Blocking entry point used by ``site-index serve``."""
    host = host or config.server.host
    port = port or config.server.port
    log.info("Search API listening on %s:%d", host, port)
    web.run_app(create_app(Engine(config)), host=host, port=port, print=None)
