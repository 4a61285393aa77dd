from __future__ import annotations

from typing import Any, Dict

from fastapi.responses import JSONResponse

from ytscribe.core.config import get_settings
from ytscribe.core.logging import get_logger
from ytscribe.errors import TranscriberError
from ytscribe.services import pipeline
from ytscribe.types import TranscribeRequest


logger = get_logger(__name__)


async def start_transcription(req: TranscribeRequest, state: Dict[str, Any]) -> Any:
    settings = get_settings()
    request_id = pipeline.new_request_id()
    try:
        return await pipeline.handle_transcription(req.url, settings=settings, client=state.get("http_client"), request_id=request_id)
    except TranscriberError as e:
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            "transcription request failed",
            extra={"component": "api", "request_id": request_id, "code": e.code, "status": e.status_code, "error": e.detail or e.message},
        )
        return JSONResponse(status_code=e.status_code, content=pipeline.error_body(e, settings))
