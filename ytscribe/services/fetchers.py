from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

from ytscribe.core.logging import get_logger
from ytscribe.errors import (
    INVALID_URL_MESSAGE,
    VIDEO_INACCESSIBLE_MESSAGE,
    DownloadError,
    InvalidInput,
)
from ytscribe.services.download_utils import (
    classify_ytdlp_failure,
    last_error_line,
    remove_scratch_files,
    run_ytdlp,
    scratch_stem,
)
from ytscribe.types import VideoInfo


logger = get_logger(__name__)


ALLOWED_HOSTS = frozenset({"youtube.com", "www.youtube.com", "youtu.be"})

# Lowest acceptable audio-only stream; bestaudio when no worst variant is listed
AUDIO_FORMAT = "worstaudio/bestaudio"

_PATH_ID_PREFIXES = ("shorts", "embed", "live", "v")


def validate_youtube_url(url: Optional[str]) -> str:
    """Return the trimmed URL if its host is an allowed YouTube host, else raise InvalidInput."""
    if not url or not isinstance(url, str) or not url.strip():
        raise InvalidInput(INVALID_URL_MESSAGE, detail="missing url")
    url = url.strip()
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError as e:
        raise InvalidInput(INVALID_URL_MESSAGE, detail=f"unparsable url: {e}")
    if parsed.scheme not in ("http", "https") or host not in ALLOWED_HOSTS:
        raise InvalidInput(INVALID_URL_MESSAGE, detail=f"host not allowed: {host or 'none'}")
    return url


def extract_video_id(url: str) -> Optional[str]:
    """Best-effort video id extraction; returns None when the URL carries none."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    host = (parsed.hostname or "").lower()
    segments = [s for s in parsed.path.split("/") if s]
    if host == "youtu.be":
        return segments[0] if segments else None
    video_id = parse_qs(parsed.query).get("v", [None])[0]
    if video_id:
        return video_id
    if len(segments) >= 2 and segments[0] in _PATH_ID_PREFIXES:
        return segments[1]
    return None


def _parse_video_info(metadata: Dict[str, Any]) -> VideoInfo:
    duration = metadata.get("duration") or 0
    return VideoInfo(
        title=metadata.get("title") or "",
        duration_seconds=int(float(duration)),
        channel=metadata.get("channel") or metadata.get("uploader") or "",
        thumbnail=metadata.get("thumbnail"),
    )


async def fetch_video_info(url: str, request_id: str) -> VideoInfo:
    """
    Look up title, channel, thumbnail and duration without downloading.

    Every failure here means the video cannot be reached, so it is reported
    as InvalidInput rather than a server fault.
    """
    try:
        returncode, stdout, stderr = await run_ytdlp(["--dump-json", "--skip-download", url], request_id)
    except OSError as e:
        logger.error("yt-dlp could not be started", extra={"component": "fetch", "request_id": request_id, "error": str(e)})
        raise InvalidInput(VIDEO_INACCESSIBLE_MESSAGE, detail=str(e))

    if returncode != 0:
        logger.warning("metadata lookup failed", extra={"component": "fetch", "request_id": request_id, "stderr": stderr})
        raise InvalidInput(VIDEO_INACCESSIBLE_MESSAGE, detail=last_error_line(stderr), reason=classify_ytdlp_failure(stderr))

    try:
        metadata = json.loads(stdout.strip().splitlines()[-1])
        info = _parse_video_info(metadata)
    except (IndexError, ValueError, TypeError, AttributeError) as e:
        logger.warning("metadata output unreadable", extra={"component": "fetch", "request_id": request_id, "error": str(e)})
        raise InvalidInput(VIDEO_INACCESSIBLE_MESSAGE, detail=f"unreadable metadata: {e}")

    logger.info(
        "video info fetched",
        extra={"component": "fetch", "request_id": request_id, "title": info.title, "duration_seconds": info.duration_seconds},
    )
    return info


def _downloaded_path(stdout: str, scratch_dir: Path, stem: str) -> Optional[Path]:
    try:
        metadata = json.loads(stdout.strip().splitlines()[-1])
    except (IndexError, ValueError):
        metadata = {}
    downloads = metadata.get("requested_downloads") or [{}]
    filename = downloads[0].get("filepath") or metadata.get("_filename")
    if filename and Path(filename).is_file():
        return Path(filename)
    # Fall back to whatever landed under our stem
    matches = sorted(p for p in scratch_dir.glob(f"{stem}.*") if p.is_file())
    return matches[0] if matches else None


async def download_audio(url: str, scratch_dir: Path, request_id: str) -> Path:
    """
    Download the lowest-quality audio-only stream into a unique scratch file.

    On any failure every file carrying the scratch stem is removed before
    DownloadError is raised.
    """
    scratch_dir.mkdir(parents=True, exist_ok=True)
    stem = scratch_stem(extract_video_id(url))
    template = str(scratch_dir / f"{stem}.%(ext)s")

    try:
        returncode, stdout, stderr = await run_ytdlp(
            ["--no-part", "-f", AUDIO_FORMAT, "-o", template, "--print-json", "--no-simulate", url],
            request_id,
        )
    except OSError as e:
        remove_scratch_files(scratch_dir, stem, request_id)
        logger.error("yt-dlp could not be started", extra={"component": "fetch", "request_id": request_id, "error": str(e)})
        raise DownloadError(detail=str(e))
    except BaseException:
        remove_scratch_files(scratch_dir, stem, request_id)
        raise

    if returncode != 0:
        remove_scratch_files(scratch_dir, stem, request_id)
        logger.error("audio download failed", extra={"component": "fetch", "request_id": request_id, "stderr": stderr})
        raise DownloadError(detail=last_error_line(stderr), reason=classify_ytdlp_failure(stderr))

    path = _downloaded_path(stdout, scratch_dir, stem)
    if path is None or path.stat().st_size == 0:
        remove_scratch_files(scratch_dir, stem, request_id)
        logger.error("audio download produced no file", extra={"component": "fetch", "request_id": request_id, "stem": stem})
        raise DownloadError(detail="downloaded audio file missing or empty")

    logger.info("audio downloaded", extra={"component": "fetch", "request_id": request_id, "path": str(path), "size": path.stat().st_size})
    return path
