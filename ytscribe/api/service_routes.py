from __future__ import annotations

import asyncio
import shutil
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from fastapi.responses import JSONResponse

from ytscribe import __version__
from ytscribe.core.config import get_settings
from ytscribe.core.logging import get_logger
from ytscribe.errors import SERVER_ERROR_MESSAGE
from ytscribe.services.sweeper import sweep_stale_files


logger = get_logger(__name__)


SERVICE_NAME = "YouTube Transcriber API"


def check_ytdlp_available() -> bool:
    # Use the same Python interpreter that's running the server
    try:
        result = subprocess.run([sys.executable, "-m", "yt_dlp", "--version"], capture_output=True, text=True, timeout=5)
        return result.returncode == 0
    except (OSError, subprocess.SubprocessError):
        return shutil.which("yt-dlp") is not None


async def get_test_info() -> Dict[str, Any]:
    return {
        "success": True,
        "message": "API funcionando corretamente!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "service": SERVICE_NAME,
    }


async def get_status(state: Dict[str, Any]) -> Dict[str, Any]:
    settings = get_settings()
    ytdlp_ok = state.get("yt_dlp_ok")
    if ytdlp_ok is None:
        ytdlp_ok = await asyncio.to_thread(check_ytdlp_available)
        state["yt_dlp_ok"] = ytdlp_ok
    return {
        "success": True,
        "status": "online",
        "services": {
            "assemblyai": "configured" if settings.provider_configured else "not_configured",
            "yt_dlp": "available" if ytdlp_ok else "unavailable",
        },
        "limits": {
            "max_duration_minutes": settings.max_video_duration_minutes,
        },
    }


async def run_cleanup(state: Dict[str, Any]) -> Any:
    """Manually trigger the stale-file sweep."""
    settings = get_settings()
    sweeper = state.get("sweeper")
    directory = sweeper.directory if sweeper is not None else Path(settings.temp_dir)
    max_age = sweeper.max_age_seconds if sweeper is not None else settings.scratch_max_age_seconds
    try:
        cleaned = await asyncio.to_thread(sweep_stale_files, directory, max_age)
    except OSError as e:
        logger.error("manual cleanup failed", extra={"component": "cleanup", "error": str(e)})
        body: Dict[str, Any] = {"success": False, "message": "Erro ao limpar arquivos temporários"}
        if not settings.is_production:
            body["error"] = str(e)
        return JSONResponse(status_code=500, content=body)

    logger.info("manual cleanup completed", extra={"component": "cleanup", "cleaned_files": cleaned})
    return {
        "success": True,
        "message": f"Limpeza concluída: {cleaned} arquivo(s) removido(s)",
        "cleaned_files": cleaned,
    }


def server_error_body(error: Exception) -> Dict[str, Any]:
    settings = get_settings()
    return {
        "success": False,
        "message": SERVER_ERROR_MESSAGE,
        "error": "Erro interno" if settings.is_production else str(error),
    }
