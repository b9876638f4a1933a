"""
Page Pipeline Service for single-page OCR

Runs one page image through the full chain:
fetch -> decode -> band -> detect -> normalize -> merge -> stitch

The raw (pre-merge) stage is exposed separately so band results can be
captured as RawChunk fixtures and replayed offline.
"""

import logging
import time
from typing import Callable, List, Optional

from ..acquisition.chunker import iter_bands, encode_band_png
from ..acquisition.image_loader import fetch_image_bytes, decode_image
from ..config.config_manager import ServerConfig, get_server_config
from ..detection.geometry import normalize_paragraphs
from ..detection.line_detector import LineDetector
from ..models.ocr_models import OcrResult, RawChunk
from ..reconstruction.line_merger import MergeConfig
from .stitcher import merge_and_stitch

logger = logging.getLogger(__name__)


class PagePipelineService:
    """Service for turning a page image into whole-image OCR results"""

    def __init__(
        self,
        detector: LineDetector,
        config: Optional[ServerConfig] = None,
        merge_config: Optional[MergeConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            detector: Line detector used for every band
            config: Server configuration (global config if omitted)
            merge_config: Merge thresholds (derived from config if omitted)
            sleep: Backoff sleep, replaceable in tests
        """
        self.detector = detector
        self.config = config or get_server_config()
        self.merge_config = merge_config or MergeConfig(
            add_space_on_merge=self.config.add_space_on_merge
        )
        self.sleep = sleep

    def get_raw_chunks(self, image_bytes: bytes) -> List[RawChunk]:
        """
        Decode and band an image, run the detector on each band.

        Returns:
            One RawChunk per band with band-pixel, unmerged lines
        """
        image = decode_image(image_bytes)
        full_width, full_height = image.size

        chunks = []
        for band in iter_bands(image, self.config.chunk_max_height):
            paragraphs = self.detector.detect(
                encode_band_png(band),
                self.config.language_hint,
                proxy=self.config.detector_proxy or None
            )
            lines = normalize_paragraphs(paragraphs, band.width, band.height)
            chunks.append(RawChunk(
                lines=lines,
                width=band.width,
                height=band.height,
                global_y=band.global_y,
                full_width=full_width,
                full_height=full_height,
            ))

        logger.debug(f"Detected {sum(len(c.lines) for c in chunks)} lines in {len(chunks)} bands")
        return chunks

    def process_raw_chunks(self, chunks: List[RawChunk]) -> List[OcrResult]:
        """Merge each band independently, then stitch into full-image space."""
        return merge_and_stitch(chunks, self.merge_config)

    def process_image_bytes(self, image_bytes: bytes) -> List[OcrResult]:
        return self.process_raw_chunks(self.get_raw_chunks(image_bytes))

    def fetch_and_process(
        self,
        url: str,
        user: Optional[str] = None,
        password: Optional[str] = None
    ) -> List[OcrResult]:
        """Single attempt: fetch the page and run the full pipeline."""
        image_bytes = fetch_image_bytes(url, user, password, timeout=self.config.fetch_timeout)
        return self.process_image_bytes(image_bytes)

    def fetch_and_process_with_retry(
        self,
        url: str,
        user: Optional[str] = None,
        password: Optional[str] = None
    ) -> List[OcrResult]:
        """
        Run fetch_and_process with a bounded number of attempts.

        Waits retry_backoff_seconds * attempt between attempts (1s, 2s with
        defaults). The last error is re-raised once every attempt has failed.
        """
        attempts = max(1, self.config.retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return self.fetch_and_process(url, user, password)
            except Exception as e:
                if attempt >= attempts:
                    logger.error(f"❌ Giving up on {url} after {attempt} attempts: {e}")
                    raise
                logger.warning(f"⚠️ Attempt {attempt}/{attempts} failed for {url}: {e}")
                self.sleep(self.config.retry_backoff_seconds * attempt)

        # unreachable: the loop either returns or raises
        raise RuntimeError("retry loop exited without result")


# Singleton instance
_page_pipeline_instance = None


def get_page_pipeline_service() -> PagePipelineService:
    """Get or create singleton PagePipelineService instance."""
    global _page_pipeline_instance

    if _page_pipeline_instance is None:
        from ..detection.line_detector import get_line_detector
        _page_pipeline_instance = PagePipelineService(get_line_detector())

    return _page_pipeline_instance
