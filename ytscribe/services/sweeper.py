from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Optional

from ytscribe.core.logging import get_logger


logger = get_logger(__name__)


def sweep_stale_files(directory: Path, max_age_seconds: float = 3600, now: Optional[float] = None) -> int:
    """
    Delete entries in ``directory`` last modified more than ``max_age_seconds`` ago.

    Returns the number of files removed. A missing directory sweeps nothing.
    Listing errors propagate; per-file stat/delete errors are logged and skipped.
    """
    now = time.time() if now is None else now
    cutoff = now - max_age_seconds
    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        return 0

    removed = 0
    for path in entries:
        try:
            if not path.is_file():
                continue
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
                logger.info("removed stale scratch file", extra={"component": "sweeper", "path": str(path)})
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("could not sweep file", extra={"component": "sweeper", "path": str(path), "error": str(e)})
    return removed


class ScratchSweeper:
    """Owns the periodic stale-file sweep; started and stopped with the app lifespan."""

    def __init__(self, directory: Path, interval_seconds: float = 3600, max_age_seconds: float = 3600):
        self.directory = directory
        self.interval_seconds = max(1.0, float(interval_seconds))
        self.max_age_seconds = max_age_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("sweeper started", extra={"component": "sweeper", "directory": str(self.directory), "interval": self.interval_seconds})

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("sweeper stopped", extra={"component": "sweeper"})

    def run_once(self) -> int:
        return sweep_stale_files(self.directory, self.max_age_seconds)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                removed = await asyncio.to_thread(self.run_once)
                if removed:
                    logger.info("periodic sweep completed", extra={"component": "sweeper", "removed": removed})
            except Exception as e:
                logger.exception("periodic sweep failed", extra={"component": "sweeper", "error": str(e)})
