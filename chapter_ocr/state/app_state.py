"""
App State - Shared process state for the OCR server

Holds the cache, request/job counters and the map of active chapter jobs.
Each collection has its own lock and every mutation is a single update under
that lock, so a failing holder never leaves state half-written.
"""

import logging
import threading
from typing import Dict, Any, Optional

from ..cache.ocr_cache import OcrCacheStore, DEFAULT_CACHE_FILE
from ..models.ocr_models import JobProgress
from ..support.rw_lock import ReadWriteLock

logger = logging.getLogger(__name__)


class AppState:
    """Process-wide state, created once and injected into request handlers."""

    def __init__(self, cache_dir: str, cache_file_name: str = DEFAULT_CACHE_FILE):
        self.cache = OcrCacheStore(cache_dir, cache_file_name)

        self._counter_lock = threading.Lock()
        self._requests_processed = 0
        self._active_jobs = 0

        self._chapters_lock = ReadWriteLock()
        self._active_chapters: Dict[str, JobProgress] = {}

        logger.info(f"AppState initialized with {len(self.cache)} cached pages")

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def requests_processed(self) -> int:
        with self._counter_lock:
            return self._requests_processed

    @property
    def active_jobs(self) -> int:
        with self._counter_lock:
            return self._active_jobs

    def increment_requests(self) -> int:
        with self._counter_lock:
            self._requests_processed += 1
            return self._requests_processed

    def job_started(self) -> None:
        with self._counter_lock:
            self._active_jobs += 1

    def job_finished(self) -> None:
        with self._counter_lock:
            self._active_jobs = max(0, self._active_jobs - 1)

    # ------------------------------------------------------------------
    # Chapter progress
    # ------------------------------------------------------------------

    def register_chapter_job(self, base_url: str, total: int) -> bool:
        """
        Mark a chapter as being processed.

        Returns:
            False if the chapter already has an active job
        """
        with self._chapters_lock.write():
            if base_url in self._active_chapters:
                return False
            self._active_chapters[base_url] = JobProgress(current=0, total=total)
            return True

    def update_chapter_progress(self, base_url: str, current: int) -> None:
        with self._chapters_lock.write():
            progress = self._active_chapters.get(base_url)
            if progress is not None:
                self._active_chapters[base_url] = JobProgress(current=current, total=progress.total)

    def finish_chapter_job(self, base_url: str) -> None:
        with self._chapters_lock.write():
            self._active_chapters.pop(base_url, None)

    def get_chapter_progress(self, base_url: str) -> Optional[JobProgress]:
        """Copy of the progress of an active chapter, or None."""
        with self._chapters_lock.read():
            progress = self._active_chapters.get(base_url)
            if progress is None:
                return None
            return JobProgress(current=progress.current, total=progress.total)

    def is_chapter_active(self, base_url: str) -> bool:
        with self._chapters_lock.read():
            return base_url in self._active_chapters

    def status_snapshot(self) -> Dict[str, Any]:
        with self._counter_lock:
            requests_processed = self._requests_processed
            active_jobs = self._active_jobs
        return {
            "requests_processed": requests_processed,
            "items_in_cache": len(self.cache),
            "active_jobs": active_jobs,
        }
