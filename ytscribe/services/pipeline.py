from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ytscribe.core.config import AppSettings, get_settings
from ytscribe.core.logging import get_logger
from ytscribe.errors import (
    ConfigurationError,
    InternalError,
    InvalidInput,
    PROVIDER_NOT_CONFIGURED_MESSAGE,
    TranscriberError,
    duration_exceeded_message,
)
from ytscribe.services import fetchers, transcribe
from ytscribe.types import ErrorResponse, TranscribeResponse


logger = get_logger(__name__)


SUCCESS_MESSAGE = "Transcrição concluída com sucesso!"


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def _remove_scratch(path: Optional[Path], request_id: str) -> None:
    if path is None:
        return
    try:
        path.unlink()
        logger.info("scratch file removed", extra={"component": "cleanup", "request_id": request_id, "path": str(path)})
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("failed to remove scratch file", extra={"component": "cleanup", "request_id": request_id, "path": str(path), "error": str(e)})


async def handle_transcription(
    url: Optional[str],
    settings: Optional[AppSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run one transcription request start to finish.

    Gates run in order and the first failure raises a TranscriberError:
    URL host, metadata lookup, duration ceiling, provider credential, audio
    download, provider transcription. The scratch file is removed on every
    exit path once it exists.
    """
    settings = settings or get_settings()
    request_id = request_id or new_request_id()

    url = fetchers.validate_youtube_url(url)
    logger.info("transcription requested", extra={"component": "pipeline", "request_id": request_id, "url": url})

    info = await fetchers.fetch_video_info(url, request_id)

    minutes = info.duration_minutes
    if minutes > settings.max_video_duration_minutes:
        logger.info(
            "video over duration ceiling",
            extra={"component": "pipeline", "request_id": request_id, "minutes": minutes, "max_minutes": settings.max_video_duration_minutes},
        )
        raise InvalidInput(duration_exceeded_message(minutes, settings.max_video_duration_minutes))

    if not settings.provider_configured:
        logger.error("provider credential missing", extra={"component": "pipeline", "request_id": request_id})
        raise ConfigurationError(PROVIDER_NOT_CONFIGURED_MESSAGE, detail="ASSEMBLYAI_API_KEY is not set")

    audio_path: Optional[Path] = None
    try:
        audio_path = await fetchers.download_audio(url, Path(settings.temp_dir), request_id)
        result = await transcribe.transcribe_file(audio_path, request_id, settings=settings, client=client)
    except TranscriberError:
        raise
    except Exception as e:
        logger.exception("unexpected pipeline failure", extra={"component": "pipeline", "request_id": request_id})
        raise InternalError(detail=str(e)) from e
    finally:
        _remove_scratch(audio_path, request_id)

    logger.info("transcription request completed", extra={"component": "pipeline", "request_id": request_id})
    return TranscribeResponse(
        videoInfo=info.to_public(),
        transcription=result.text,
        confidence=result.confidence,
        audio_duration=result.audio_duration,
        message=SUCCESS_MESSAGE,
    ).model_dump()


def error_body(error: TranscriberError, settings: Optional[AppSettings] = None) -> Dict[str, Any]:
    """Structured failure payload; raw detail only leaves the process outside production."""
    settings = settings or get_settings()
    if settings.is_production:
        return ErrorResponse(message=error.message).model_dump(exclude_none=True)
    return ErrorResponse(message=error.message, error=error.detail or error.message).model_dump()
