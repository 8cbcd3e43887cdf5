"""
Rune Service API
================

FastAPI app serving the rune cache.

Usage:
    rune-service serve
    uvicorn rune_service.api.app:create_app --factory --host 0.0.0.0 --port 10000

Endpoints:
    GET  /health            - cache size and freshness
    GET  /runes?name=       - partial name search
    POST /admin/crawl-now   - scrape now (single-flight)
    GET  /admin/reload      - reload from RUNE_JSON_URL
    GET  /ask?question=     - Gemini answer primed with rune data
    POST /relay             - forward {room, text} to the chat bot
"""

import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from rich.logging import RichHandler

from rune_service import __version__
from rune_service.api.routes import router, validation_error_handler
from rune_service.config import Settings
from rune_service.extractors import ExtractionRules, MABIMOBI_RULES
from rune_service.pipeline import Fetcher, build_fetcher, scrape_runes
from rune_service.refresh import RefreshController
from rune_service.sources import fetch_remote_runes
from rune_service.store import RuneStore

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Route stdlib logging (uvicorn, fastapi) through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
        force=True,
    )


def build_controller(
    settings: Settings,
    store: RuneStore,
    fetcher: Fetcher,
    rules: ExtractionRules = MABIMOBI_RULES,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RefreshController:
    """Wire the scrape pipeline and optional remote source into a controller."""
    scrape = partial(
        scrape_runes,
        fetcher,
        settings.source_url,
        settings.source_origin,
        rules,
    )
    load_remote = None
    if settings.remote_json_url:
        load_remote = partial(
            fetch_remote_runes,
            settings.remote_json_url,
            timeout=settings.http_timeout,
            transport=transport,
        )
    return RefreshController(store, scrape=scrape, load_remote=load_remote)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Restore the cache on startup, stop the timer and browser on shutdown."""
    settings: Settings = app.state.settings
    controller: RefreshController = app.state.controller

    logger.info("Starting rune service (fetch mode: %s)", settings.fetch_mode)
    source = await controller.startup()
    logger.info("Initial rune data: %s (%d items)", source or "none", len(app.state.store))
    controller.start_timer(settings.refresh_interval)

    yield

    logger.info("Shutting down rune service")
    await controller.stop_timer()
    await app.state.fetcher.close()


def create_app(
    settings: Optional[Settings] = None,
    fetcher: Optional[Fetcher] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    rules: ExtractionRules = MABIMOBI_RULES,
) -> FastAPI:
    """Build the app with its own store and controller.

    ``transport`` is used for outbound httpx calls other than the scrape
    fetch (remote JSON, Gemini, relay).
    """
    settings = settings or Settings.from_env()
    fetcher = fetcher or build_fetcher(settings, rules)
    store = RuneStore(settings.cache_file)

    app = FastAPI(
        title="Rune Service",
        description="Mabinogi Mobile rune search backed by a scraped cache",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.fetcher = fetcher
    app.state.http_transport = transport
    app.state.controller = build_controller(settings, store, fetcher, rules, transport)
    app.include_router(router)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    return app

