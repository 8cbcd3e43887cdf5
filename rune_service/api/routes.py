"""HTTP routes. Every body carries an ``ok`` flag; domain failures are 200s."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rune_service.config import Settings
from rune_service.enrichers import ask_gemini
from rune_service.errors import InvalidRequestError, RuneServiceError
from rune_service.notifiers import send_webhook
from rune_service.refresh import RefreshController
from rune_service.search import search_runes
from rune_service.store import RuneStore

router = APIRouter()
logger = logging.getLogger(__name__)


class RelayRequest(BaseModel):
    room: Optional[str] = None
    text: Optional[str] = None


def failure(error: RuneServiceError | str) -> dict:
    message = error.message if isinstance(error, RuneServiceError) else error
    return {"ok": False, "error": message}


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same {ok: false} shape as domain failures."""
    logger.warning("Invalid request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(failure("Invalid request body"))


def get_store(request: Request) -> RuneStore:
    return request.app.state.store


def get_controller(request: Request) -> RefreshController:
    return request.app.state.controller


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/health")
async def health(request: Request):
    snapshot = get_store(request).snapshot()
    controller = get_controller(request)
    last = controller.last_result
    return {
        "ok": True,
        "items": len(snapshot.records),
        "lastLoadedAt": snapshot.loaded_at,
        "source": snapshot.source,
        "refreshing": controller.is_running,
        "lastRefresh": last.model_dump(exclude_none=True) if last else None,
    }


@router.get("/runes")
async def find_rune(request: Request, name: Optional[str] = Query(None)):
    try:
        result = search_runes(get_store(request).current(), name)
    except RuneServiceError as e:
        return failure(e)
    return {
        "ok": True,
        "rune": result.primary.to_json_record(),
        "count": result.count,
        "matches": [rune.to_json_record() for rune in result.matches],
    }


@router.post("/admin/crawl-now")
async def crawl_now(request: Request):
    result = await get_controller(request).refresh(trigger="manual")
    return result.to_response()


@router.get("/admin/reload")
async def reload_runes(request: Request):
    result = await get_controller(request).reload(trigger="reload")
    return result.to_response()


@router.get("/ask")
async def ask(request: Request, question: Optional[str] = Query(None)):
    settings = get_settings(request)
    try:
        answer = await ask_gemini(
            question,
            get_store(request).current(),
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            transport=request.app.state.http_transport,
        )
    except RuneServiceError as e:
        return failure(e)
    return {"ok": True, "answer": answer}


@router.post("/relay")
async def relay(request: Request, body: RelayRequest):
    settings = get_settings(request)
    logger.info("Relay received: room=%s text=%s", body.room, body.text)
    if not (body.text or "").strip():
        return failure(InvalidRequestError("text parameter required"))
    try:
        await send_webhook(
            settings.relay_target_url,
            body.text,
            room=body.room,
            transport=request.app.state.http_transport,
        )
    except RuneServiceError as e:
        return failure(e)
    return {"ok": True}
