from __future__ import annotations

import asyncio
import re
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from ytscribe.core.logging import get_logger
from ytscribe.errors import FailureReason


logger = get_logger(__name__)


USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0 Safari/537.36"

_UNAVAILABLE_MARKERS = (
    "video unavailable",
    "private video",
    "this video is not available",
    "sign in to confirm your age",
    "members-only",
    "has been removed",
)
_NETWORK_MARKERS = (
    "unable to download webpage",
    "timed out",
    "name or service not known",
    "temporary failure in name resolution",
    "connection reset",
    "network is unreachable",
)
_RATE_LIMIT_MARKERS = ("http error 429", "too many requests")


def ytdlp_base_cmd() -> List[str]:
    return [
        sys.executable, "-m", "yt_dlp",
        "--user-agent", USER_AGENT,
        "--socket-timeout", "30",
        "--retries", "3",
        "--no-playlist", "--no-warnings", "--no-cache-dir",
    ]


async def run_ytdlp(args: List[str], request_id: str) -> Tuple[int, str, str]:
    """Run yt-dlp with the given extra args. Returns (returncode, stdout, stderr)."""
    cmd = ytdlp_base_cmd() + args
    logger.info("running yt-dlp", extra={"component": "fetch", "request_id": request_id, "cmd": cmd})
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        # Do not leave yt-dlp writing into a scratch file that is about to be removed
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise
    return proc.returncode, stdout.decode("utf-8", "ignore"), stderr.decode("utf-8", "ignore")


def classify_ytdlp_failure(stderr_text: str) -> Optional[FailureReason]:
    """Map yt-dlp diagnostics onto a failure reason, or None when nothing matches."""
    lowered = stderr_text.lower()
    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return FailureReason.RATE_LIMITED
    if any(marker in lowered for marker in _UNAVAILABLE_MARKERS):
        return FailureReason.VIDEO_UNAVAILABLE
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return FailureReason.NETWORK
    return None


def last_error_line(stderr_text: str) -> str:
    lines = [line.strip() for line in stderr_text.splitlines() if line.strip()]
    if not lines:
        return "yt-dlp failed without output"
    line = lines[-1]
    if line.startswith("ERROR:"):
        line = line[6:].strip()
    return line


_SAFE_ID = re.compile(r"[^A-Za-z0-9_-]")


def scratch_stem(video_id: Optional[str], now: Optional[float] = None) -> str:
    """
    Unique scratch filename stem: ``<video_id>_<ms timestamp>``.

    Without a usable video id, ``video_<ms timestamp>`` stands in for it.
    """
    ts = int((now if now is not None else time.time()) * 1000)
    safe_id = _SAFE_ID.sub("", video_id or "")
    if not safe_id:
        safe_id = f"video_{ts}"
    return f"{safe_id}_{ts}"


def remove_scratch_files(directory: Path, stem: str, request_id: str) -> int:
    """Delete every file in ``directory`` belonging to ``stem``. Errors are logged only."""
    removed = 0
    candidates = [directory / stem, *directory.glob(f"{stem}.*")]
    for path in candidates:
        if not path.is_file():
            continue
        try:
            path.unlink()
            removed += 1
            logger.info("removed scratch file", extra={"component": "cleanup", "request_id": request_id, "path": str(path)})
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.error("failed to remove scratch file", extra={"component": "cleanup", "request_id": request_id, "path": str(path), "error": str(e)})
    return removed
