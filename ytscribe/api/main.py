from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ytscribe.api.routes import (
    check_ytdlp_available,
    get_status,
    get_test_info,
    run_cleanup,
    server_error_body,
    start_transcription,
)
from ytscribe.core.config import get_settings
from ytscribe.core.logging import configure_logging, get_logger
from ytscribe.errors import INVALID_URL_MESSAGE, NOT_FOUND_MESSAGE
from ytscribe.services.sweeper import ScratchSweeper
from ytscribe.types import TranscribeRequest


logger = get_logger(__name__)


state: Dict[str, Any] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("starting app", extra={"component": "api", "request_id": "startup", "environment": settings.environment})

    temp_dir = Path(settings.temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)

    yt_ok = await asyncio.to_thread(check_ytdlp_available)
    state["yt_dlp_ok"] = yt_ok
    logger.info(
        "tool check",
        extra={
            "component": "startup",
            "request_id": "startup",
            "yt_dlp": yt_ok,
            "assemblyai_configured": settings.provider_configured,
        },
    )

    state["http_client"] = httpx.AsyncClient(timeout=httpx.Timeout(60.0, read=300.0))

    sweeper = ScratchSweeper(temp_dir, settings.sweep_interval_seconds, settings.scratch_max_age_seconds)
    sweeper.start()
    state["sweeper"] = sweeper

    try:
        yield
    finally:
        sweeper = state.pop("sweeper", None)
        if sweeper is not None:
            await sweeper.stop()

        client = state.pop("http_client", None)
        if client is not None:
            await client.aclose()
        state.pop("yt_dlp_ok", None)
        logger.info("shutdown complete", extra={"component": "api", "request_id": "shutdown"})


app = FastAPI(title="youtube-transcriber", lifespan=lifespan)
router = APIRouter()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": INVALID_URL_MESSAGE}
    if not get_settings().is_production:
        body["error"] = str(exc.errors())
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"success": False, "message": NOT_FOUND_MESSAGE})
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)}, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error", extra={"component": "api", "path": request.url.path})
    return JSONResponse(status_code=500, content=server_error_body(exc))


@app.get("/health")
async def health() -> Dict[str, Any]:
    settings = get_settings()
    sweeper = state.get("sweeper")
    return {
        "status": "ok",
        "environment": settings.environment,
        "sweeper_active": bool(sweeper and sweeper.running),
    }


@router.post("/transcribe")
async def transcribe_endpoint(req: TranscribeRequest) -> Any:
    return await start_transcription(req, state)


@router.get("/test")
async def self_test_endpoint() -> Dict[str, Any]:
    return await get_test_info()


@router.get("/status")
async def status_endpoint() -> Dict[str, Any]:
    return await get_status(state)


@router.post("/cleanup")
async def cleanup_endpoint() -> Any:
    return await run_cleanup(state)


app.include_router(router, prefix="/api")
# Root aliases for clients that call the routes without the /api prefix
app.include_router(router, include_in_schema=False)
