"""Shared fixtures: fake line detector, fake page pipeline, image builders."""
import io
import threading
from typing import Dict, List, Optional

import numpy as np
import pytest
from PIL import Image

from chapter_ocr.config.config_manager import ServerConfig
from chapter_ocr.detection.line_detector import DetectedLine, DetectedParagraph, LineGeometry
from chapter_ocr.models.ocr_models import BoundingBox, OcrResult
from chapter_ocr.state.app_state import AppState


# ═══════════════════════════════════════════════════════════════════════════════
# TEST DOUBLES
# ═══════════════════════════════════════════════════════════════════════════════

class FakeLineDetector:
    """Returns the same paragraphs for every band and records each call."""

    def __init__(self, paragraphs: Optional[List[DetectedParagraph]] = None, error: Exception = None):
        self.paragraphs = paragraphs or []
        self.error = error
        self.calls = []

    def detect(self, image_bytes, language_hint, proxy=None):
        self.calls.append({"image_bytes": image_bytes, "language_hint": language_hint, "proxy": proxy})
        if self.error is not None:
            raise self.error
        return self.paragraphs


class FakePagePipeline:
    """
    Stands in for PagePipelineService in job and API tests.

    URLs listed in `failing` raise; when `gate` is given every call waits on
    it first so a job can be held open.
    """

    def __init__(self, failing=(), gate: threading.Event = None):
        self.failing = set(failing)
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def fetch_and_process_with_retry(self, url, user=None, password=None):
        with self._lock:
            self.calls.append({"url": url, "user": user, "password": password})
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if url in self.failing:
            raise RuntimeError(f"boom: {url}")
        return [make_result(f"text for {url}")]


def make_result(text: str = "テスト", **box) -> OcrResult:
    geometry = {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}
    geometry.update(box)
    return OcrResult(
        text=text,
        tight_bounding_box=BoundingBox(**geometry),
        is_merged=False,
        forced_orientation="vertical",
    )


def make_line(text: str, center_x: float, center_y: float, width: float, height: float,
              rotation: float = 0.0) -> DetectedLine:
    return DetectedLine(text=text, geometry=LineGeometry(center_x, center_y, width, height, rotation))


# ═══════════════════════════════════════════════════════════════════════════════
# IMAGE BUILDERS
# ═══════════════════════════════════════════════════════════════════════════════

def make_png(width: int = 100, height: int = 100, mode: str = "RGB") -> bytes:
    img = Image.new(mode, (width, height), color="white" if mode != "L" else 255)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_png_16bit(width: int = 8, height: int = 8, value: int = 0x1234) -> bytes:
    pixels = np.full((height, width), value, dtype=np.uint16)
    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def server_config(cache_dir) -> ServerConfig:
    return ServerConfig(cache_dir=str(cache_dir), detector_url="http://detector.invalid")


@pytest.fixture
def app_state(cache_dir) -> AppState:
    return AppState(str(cache_dir))


@pytest.fixture
def sleeps() -> List[float]:
    """Collects backoff delays instead of sleeping."""
    return []


@pytest.fixture
def no_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def single_line_detector() -> FakeLineDetector:
    """One vertical line in the middle of every band."""
    return FakeLineDetector([DetectedParagraph(lines=[make_line("テスト", 0.5, 0.5, 0.1, 0.2)])])


@pytest.fixture
def cache_snapshot() -> Dict:
    return {
        "/manga/ch1/0.png": {
            "context": "Chapter 1",
            "data": [make_result("一").to_dict()],
        },
        "/manga/ch1/1.png": {
            "context": "Chapter 1",
            "data": [],
        },
    }
