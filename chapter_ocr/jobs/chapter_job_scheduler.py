#!/usr/bin/env python3
"""
Chapter Job Scheduler - Background pre-processing of whole chapters v1.0.0

A chapter job OCRs every page of a chapter ahead of time so later /ocr
requests are cache hits. Jobs run on a small executor; inside a job, pages
are fanned out over a bounded worker pool (6 by default).

Per page:
1. Skip if the page is already cached
2. Otherwise run the pipeline with retries and insert the result (no save)
3. Bump the completion count and publish progress
4. Every 5th completion, save the cache unless a save is already running

After all pages: one forced save, then the job is deregistered. A failing
page is logged and counted as completed; it never fails the job.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Any, List, Optional

from ..cache.ocr_cache import get_cache_key
from ..config.config_manager import ServerConfig, get_server_config
from ..models.ocr_models import CacheEntry
from ..pipeline.page_pipeline_service import PagePipelineService
from ..state.app_state import AppState

logger = logging.getLogger(__name__)

STARTED = "started"
ALREADY_PROCESSING = "already_processing"


class ChapterJobScheduler:
    """Starts chapter jobs and reports their status."""

    def __init__(
        self,
        state: AppState,
        pipeline: PagePipelineService,
        config: Optional[ServerConfig] = None
    ):
        self.state = state
        self.pipeline = pipeline
        self.config = config or get_server_config()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self.config.max_chapter_jobs),
            thread_name_prefix="chapter-job"
        )
        self._first_pages: Dict[str, str] = {}
        self._first_pages_lock = threading.Lock()

    def submit(
        self,
        base_url: str,
        pages: List[str],
        user: Optional[str] = None,
        password: Optional[str] = None,
        context: str = ""
    ) -> str:
        """
        Start a chapter job in the background.

        Returns:
            "started", or "already_processing" when the chapter has an active job
        """
        if not self.state.register_chapter_job(base_url, len(pages)):
            logger.info(f"[Job] Already processing: {base_url}")
            return ALREADY_PROCESSING

        self._remember_first_page(base_url, pages)
        try:
            self._executor.submit(self._run_registered, base_url, list(pages), user, password, context)
        except RuntimeError:
            self.state.finish_chapter_job(base_url)
            raise
        return STARTED

    def run_chapter_job(
        self,
        base_url: str,
        pages: List[str],
        user: Optional[str] = None,
        password: Optional[str] = None,
        context: str = ""
    ) -> bool:
        """
        Run a chapter job on the calling thread.

        Returns:
            False if the chapter already had an active job
        """
        if not self.state.register_chapter_job(base_url, len(pages)):
            logger.info(f"[Job] Already processing: {base_url}")
            return False
        self._remember_first_page(base_url, pages)
        self._run_registered(base_url, pages, user, password, context)
        return True

    def _remember_first_page(self, base_url: str, pages: List[str]) -> None:
        if pages:
            with self._first_pages_lock:
                self._first_pages[base_url] = pages[0]

    def _run_registered(
        self,
        base_url: str,
        pages: List[str],
        user: Optional[str],
        password: Optional[str],
        context: str
    ) -> None:
        total = len(pages)
        self.state.job_started()
        logger.info(f"[Job] Started for {context} ({total} pages)")

        completed = 0

        try:
            workers = max(1, self.config.max_concurrent_pages)
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="chapter-page") as pool:
                futures = [
                    pool.submit(self._process_page, url, user, password, context)
                    for url in pages
                ]
                for future in as_completed(futures):
                    # _process_page logs its own failures
                    future.result()
                    completed += 1
                    self.state.update_chapter_progress(base_url, completed)

                    save_every = self.config.save_every
                    if save_every > 0 and completed % save_every == 0:
                        self.state.cache.try_save()
        finally:
            self.state.cache.save()
            self.state.job_finished()
            self.state.finish_chapter_job(base_url)
            logger.info(f"[Job] Finished for {context}")

    def _process_page(
        self,
        url: str,
        user: Optional[str],
        password: Optional[str],
        context: str
    ) -> bool:
        """OCR one page into the cache. Returns False if the page failed."""
        cache_key = get_cache_key(url)
        if self.state.cache.contains(cache_key):
            logger.info(f"[Job] Skip (Cached): {url}")
            return True

        try:
            results = self.pipeline.fetch_and_process_with_retry(url, user, password)
        except Exception as e:
            logger.warning(f"[Job] Failed: {url} (Error: {e})")
            return False

        self.state.cache.put(cache_key, CacheEntry(context=context, data=results), persist=False)
        logger.info(f"[Job] Processed: {url}")
        return True

    def status(self, base_url: str, representative_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Report chapter status.

        Args:
            base_url: Chapter identifier used when the job was submitted
            representative_url: Page whose presence in the cache marks the
                chapter as processed (defaults to the first page submitted
                for base_url, else base_url + "0")
        """
        progress = self.state.get_chapter_progress(base_url)
        if progress is not None:
            return {"status": "processing", "progress": progress.current, "total": progress.total}

        if representative_url is None:
            with self._first_pages_lock:
                representative_url = self._first_pages.get(base_url)
        page_url = representative_url or f"{base_url}0"
        if self.state.cache.contains(get_cache_key(page_url)):
            return {"status": "processed"}

        return {"status": "idle"}

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
