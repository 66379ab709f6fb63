"""FastAPI application for the Echo Feeds API."""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, List, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from feeds.rss import render_rss
from ingest.api_client import fetch_experiences
from ingest.errors import MissingCredential, UpstreamFailure
from ingest.query import translate_query

VERSION = "1.0.0"

RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"
RSS_CACHE_CONTROL = "max-age=300"

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Echo Feeds API",
    description="Republishes echo.lu events and experiences as JSON or RSS",
    version=VERSION,
)

# Thread pool for running the blocking upstream call in async context
executor = ThreadPoolExecutor(max_workers=4)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str


@app.exception_handler(MissingCredential)
async def missing_credential_handler(request: Request, exc: MissingCredential):
    return JSONResponse(status_code=401, content={"error": exc.message})


@app.exception_handler(UpstreamFailure)
async def upstream_failure_handler(request: Request, exc: UpstreamFailure):
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to fetch data", "message": exc.detail},
    )


def _query_pairs(request: Request) -> List[Tuple[str, str]]:
    return list(request.query_params.multi_items())


def _fetch_sync(params: List[Tuple[str, str]]) -> Any:
    """Translate and fetch in one go; runs in the thread pool."""
    return fetch_experiences(translate_query(params))


def _render_sync(params: List[Tuple[str, str]], request_url: str) -> str:
    data = _fetch_sync(params)
    return render_rss(data, request_url)


async def _run(func, *args):
    """Run ``func`` in the pool, collapsing unexpected errors into ``UpstreamFailure``."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(executor, func, *args)
    except (MissingCredential, UpstreamFailure):
        raise
    except Exception as exc:
        logger.exception("Feed request failed")
        raise UpstreamFailure(str(exc) or exc.__class__.__name__) from exc


@app.get("/json")
async def json_feed(request: Request):
    """Return the upstream experiences payload unchanged."""
    data = await _run(_fetch_sync, _query_pairs(request))
    return JSONResponse(content=data)


@app.get("/rss")
async def rss_feed(request: Request):
    """Return the upstream experiences as an RSS 2.0 feed."""
    rss = await _run(_render_sync, _query_pairs(request), str(request.url))
    return Response(
        content=rss,
        media_type=RSS_MEDIA_TYPE,
        headers={"Cache-Control": RSS_CACHE_CONTROL},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION
    )


@app.get("/live", response_model=HealthResponse)
async def liveness_check():
    """Liveness check endpoint for container orchestration."""
    return HealthResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION
    )


@app.get("/ready", response_model=HealthResponse)
async def readiness_check():
    """Readiness check endpoint for container orchestration."""
    return HealthResponse(
        status="ready",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Echo Feeds API",
        "version": VERSION,
        "feeds": ["/json", "/rss"],
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
