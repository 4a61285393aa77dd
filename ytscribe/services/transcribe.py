from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ytscribe.core.config import AppSettings, get_settings
from ytscribe.core.logging import get_logger
from ytscribe.errors import ConfigurationError, FailureReason, TranscriptionError
from ytscribe.types import TranscriptionResult


logger = get_logger(__name__)


class AssemblyAIClient:
    """Thin async client for the AssemblyAI v2 REST API: upload, create, poll."""

    def __init__(self, settings: Optional[AppSettings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        if not self.settings.provider_configured:
            raise ConfigurationError(detail="ASSEMBLYAI_API_KEY is not set")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(60.0, read=300.0))
        self._base = self.settings.assemblyai_base_url.rstrip("/")
        self._headers = {"authorization": self.settings.assemblyai_api_key}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, request_id: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self._base}{path}"
        try:
            resp = await self._client.request(method, url, headers=self._headers, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            logger.error("provider unreachable", extra={"component": "transcribe", "request_id": request_id, "url": url, "error": str(e)})
            raise TranscriptionError(detail=f"provider unreachable: {e}", reason=FailureReason.NETWORK)

        if resp.status_code == 429:
            logger.warning("provider rate limited", extra={"component": "transcribe", "request_id": request_id, "url": url})
            raise TranscriptionError(detail="provider rate limit exceeded", reason=FailureReason.RATE_LIMITED)
        if resp.status_code >= 400:
            try:
                body_error = resp.json().get("error")
            except ValueError:
                body_error = None
            detail = body_error or f"provider returned HTTP {resp.status_code}"
            logger.error("provider request failed", extra={"component": "transcribe", "request_id": request_id, "url": url, "status": resp.status_code, "error": detail})
            raise TranscriptionError(detail=detail)
        return resp.json()

    async def upload(self, audio_path: Path, request_id: str) -> str:
        data = await asyncio.to_thread(audio_path.read_bytes)
        payload = await self._request("POST", "/v2/upload", request_id, content=data)
        upload_url = payload.get("upload_url")
        if not upload_url:
            raise TranscriptionError(detail="provider did not return an upload url")
        logger.info("audio uploaded to provider", extra={"component": "transcribe", "request_id": request_id})
        return upload_url

    def transcript_params(self, audio_url: str) -> Dict[str, Any]:
        return {
            "audio_url": audio_url,
            "language_code": self.settings.transcription_language,
            "punctuate": True,
            "format_text": True,
            "speaker_labels": False,
            "auto_chapters": False,
            "sentiment_analysis": False,
            "entity_detection": False,
        }

    async def submit(self, audio_url: str, request_id: str) -> TranscriptionResult:
        payload = await self._request("POST", "/v2/transcript", request_id, json=self.transcript_params(audio_url))
        return _to_result(payload)

    async def get(self, transcript_id: str, request_id: str) -> TranscriptionResult:
        payload = await self._request("GET", f"/v2/transcript/{transcript_id}", request_id)
        return _to_result(payload)

    async def wait_for_completion(self, result: TranscriptionResult, request_id: str) -> TranscriptionResult:
        interval = max(0.0, self.settings.assemblyai_poll_interval_seconds)
        deadline = time.monotonic() + self.settings.assemblyai_poll_timeout_seconds
        while not result.is_terminal:
            if time.monotonic() > deadline:
                raise TranscriptionError(detail=f"transcript {result.id} still {result.status} after polling timeout")
            await asyncio.sleep(interval)
            result = await self.get(result.id, request_id)
            logger.debug("polled transcript", extra={"component": "transcribe", "request_id": request_id, "status": result.status})
        return result

    async def transcribe(self, audio_path: Path, request_id: str) -> TranscriptionResult:
        """Upload ``audio_path``, create a transcript and wait until it is terminal."""
        audio_url = await self.upload(audio_path, request_id)
        result = await self.submit(audio_url, request_id)
        if not result.id:
            raise TranscriptionError(detail="provider did not return a transcript id")
        logger.info("transcript submitted", extra={"component": "transcribe", "request_id": request_id, "transcript_id": result.id})
        return await self.wait_for_completion(result, request_id)


def _to_result(payload: Dict[str, Any]) -> TranscriptionResult:
    try:
        return TranscriptionResult(
            id=payload.get("id"),
            status=payload.get("status", "error"),
            text=payload.get("text") or "",
            confidence=payload.get("confidence"),
            audio_duration=payload.get("audio_duration"),
            error=payload.get("error"),
        )
    except ValueError as e:
        raise TranscriptionError(detail=f"unexpected provider response: {e}")


async def transcribe_file(audio_path: Path, request_id: str, settings: Optional[AppSettings] = None, client: Optional[httpx.AsyncClient] = None) -> TranscriptionResult:
    """Transcribe a local audio file; a provider ``error`` status becomes TranscriptionError."""
    provider = AssemblyAIClient(settings, client=client)
    try:
        result = await provider.transcribe(audio_path, request_id)
    finally:
        await provider.aclose()

    if result.status == "error":
        logger.error("provider reported error", extra={"component": "transcribe", "request_id": request_id, "error": result.error})
        raise TranscriptionError(detail=result.error or "transcription failed")

    logger.info(
        "transcription complete",
        extra={"component": "transcribe", "request_id": request_id, "text_len": len(result.text), "confidence": result.confidence},
    )
    return result
