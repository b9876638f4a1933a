#!/usr/bin/env python3
"""
Chapter OCR API - FastAPI server for manga page OCR v1.0.0

Endpoints:
    GET  /                          server status
    GET  /ocr                       OCR one page (cached)
    POST /preprocess-chapter        start a background chapter job
    GET|POST /is-chapter-preprocessed
    POST /purge-cache               drop every cached page
    GET  /export-cache              dump the cache in on-disk format
    POST /import-cache              merge an exported cache (existing keys win)

Run:
    chapter-ocr-server --port 3033 --cache-path ./cache
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from ..cache.ocr_cache import get_cache_key
from ..config.config_manager import ServerConfig, get_server_config
from ..detection.line_detector import HttpLineDetector, LineDetector
from ..jobs.chapter_job_scheduler import ChapterJobScheduler
from ..models.ocr_models import CacheEntry
from ..pipeline.page_pipeline_service import PagePipelineService
from ..state.app_state import AppState

logger = logging.getLogger(__name__)

BACKEND_NAME = "Python (chapter-ocr-server)"
DEFAULT_CONTEXT = "No Context"


# Pydantic models
class ChapterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field(..., description="Chapter identifier, usually the page URL prefix")
    pages: Optional[List[str]] = Field(None, description="Page image URLs in reading order")
    user: Optional[str] = Field(None, description="Basic-auth user for page fetches")
    password: Optional[str] = Field(None, alias="pass", description="Basic-auth password")
    context: str = Field("", description="Free-form label stored with each cached page")


class ChapterStatusRequest(BaseModel):
    base_url: str = Field(..., description="Chapter identifier used at submission")
    pages: Optional[List[str]] = Field(None, description="Pages of the chapter; the first one is checked")


def get_app_state(request: Request) -> AppState:
    return request.app.state.app_state


def get_pipeline(request: Request) -> PagePipelineService:
    return request.app.state.pipeline


def get_scheduler(request: Request) -> ChapterJobScheduler:
    return request.app.state.scheduler


def create_app(
    config: Optional[ServerConfig] = None,
    state: Optional[AppState] = None,
    pipeline: Optional[PagePipelineService] = None,
    detector: Optional[LineDetector] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Server configuration (global config if omitted)
        state: Shared state (created from config.cache_dir if omitted)
        pipeline: Page pipeline (built around `detector` if omitted)
        detector: Line detector (HTTP detector from config if omitted)
    """
    config = config or get_server_config()
    state = state or AppState(str(config.cache_dir), config.cache_file_name)
    if pipeline is None:
        detector = detector or HttpLineDetector(config.detector_url, timeout=config.detector_timeout)
        pipeline = PagePipelineService(detector, config)
    scheduler = ChapterJobScheduler(state, pipeline, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        scheduler.shutdown(wait=False)
        state.cache.save()
        logger.info("Chapter OCR server stopped")

    app = FastAPI(
        title="Chapter OCR API",
        description="OCR for manga pages with merged text regions, chapter pre-processing and a persistent cache.",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.app_state = state
    app.state.pipeline = pipeline
    app.state.scheduler = scheduler

    @app.get("/")
    def status(state: AppState = Depends(get_app_state)) -> Dict[str, Any]:
        """Server status and counters."""
        return {"status": "running", "backend": BACKEND_NAME, **state.status_snapshot()}

    @app.get("/ocr")
    def ocr(
        url: str = Query(..., description="Page image URL"),
        user: Optional[str] = Query(None),
        password: Optional[str] = Query(None, alias="pass"),
        context: str = Query(DEFAULT_CONTEXT),
        state: AppState = Depends(get_app_state),
        pipeline: PagePipelineService = Depends(get_pipeline)
    ) -> List[Dict[str, Any]]:
        """
        OCR one page. Cached pages are returned without touching the network.
        """
        cache_key = get_cache_key(url)

        entry = state.cache.get(cache_key)
        if entry is not None:
            state.increment_requests()
            return [result.to_dict() for result in entry.data]

        try:
            results = pipeline.fetch_and_process_with_retry(url, user, password)
        except Exception as e:
            logger.error(f"❌ OCR failed for {url}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        state.increment_requests()
        state.cache.put(cache_key, CacheEntry(context=context, data=results))
        return [result.to_dict() for result in results]

    @app.post("/preprocess-chapter")
    def preprocess_chapter(
        request: ChapterRequest,
        scheduler: ChapterJobScheduler = Depends(get_scheduler)
    ) -> Dict[str, Any]:
        """Start OCR of every page of a chapter in the background."""
        if not request.pages:
            raise HTTPException(status_code=400, detail="No pages provided")

        status = scheduler.submit(
            request.base_url,
            request.pages,
            user=request.user,
            password=request.password,
            context=request.context
        )
        return {"status": status}

    @app.get("/is-chapter-preprocessed")
    def is_chapter_preprocessed(
        base_url: str = Query(...),
        scheduler: ChapterJobScheduler = Depends(get_scheduler)
    ) -> Dict[str, Any]:
        """
        Chapter status by base_url alone.

        "processed" is judged by the first page submitted for base_url. That
        page is only remembered in memory, so after a restart this falls back
        to base_url + "0" and may report "idle" for a cached chapter whose
        pages use other names; POST this route with the page list instead.
        """
        return scheduler.status(base_url)

    @app.post("/is-chapter-preprocessed")
    def is_chapter_preprocessed_post(
        request: ChapterStatusRequest,
        scheduler: ChapterJobScheduler = Depends(get_scheduler)
    ) -> Dict[str, Any]:
        representative = request.pages[0] if request.pages else None
        return scheduler.status(request.base_url, representative)

    @app.post("/purge-cache")
    def purge_cache(state: AppState = Depends(get_app_state)) -> Dict[str, Any]:
        """Drop every cached page and persist the empty cache."""
        state.cache.clear()
        return {"status": "cleared"}

    @app.get("/export-cache")
    def export_cache(
        context: Optional[str] = Query(None, description="Only export entries with this context"),
        state: AppState = Depends(get_app_state)
    ) -> Dict[str, Any]:
        return state.cache.export(context)

    @app.post("/import-cache")
    def import_cache(
        data: Dict[str, Any] = Body(...),
        state: AppState = Depends(get_app_state)
    ) -> Dict[str, Any]:
        """Merge an exported cache; keys already present are left untouched."""
        added = state.cache.import_entries(data)
        return {"message": "Import successful", "added": added}

    logger.info(f"✅ Chapter OCR app created (cache: {config.cache_path}, detector: {config.detector_url})")
    return app


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Chapter OCR server")
    parser.add_argument("--config", help="Path to a YAML/JSON config file")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Listen port (default 3033)")
    parser.add_argument("--cache-path", dest="cache_dir", help="Directory holding ocr-cache.json")
    parser.add_argument("--detector-url", help="Base URL of the line detector service")
    args = parser.parse_args(argv)

    config = get_server_config(args.config)
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.cache_dir:
        config.cache_dir = args.cache_dir
    if args.detector_url:
        config.detector_url = args.detector_url

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    import uvicorn
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
