"""
Chapter OCR - OCR server for manga and comic pages

Organized into 9 functional components:

📂 acquisition/ - Page images in
   ├─ fetch_image_bytes: HTTP fetch with optional basic auth
   ├─ decode_image: Pillow decode, dedicated AVIF path (imagecodecs)
   └─ iter_bands: 3000 px horizontal bands

📂 detection/ - External line detector boundary
   ├─ LineDetector / HttpLineDetector: oracle interface and HTTP adapter
   └─ normalize_paragraphs: rotation-aware boxes, orientation, CJK whitespace

📂 reconstruction/ - Fragment merging
   ├─ auto_merge: Union-Find clustering with robust medians
   └─ regression: replay of captured detector output

📂 pipeline/ - Page processing
   ├─ PagePipelineService: fetch -> band -> detect -> merge -> stitch, with retries
   └─ stitch_results: band pixels to whole-image fractions

📂 cache/ - OcrCacheStore: path-keyed, atomically saved results
📂 state/ - AppState: cache, counters, active chapter progress
📂 jobs/ - ChapterJobScheduler: bounded-concurrency chapter pre-processing
📂 api/ - FastAPI app (create_app) and the chapter-ocr-server launcher
📂 config/ - ServerConfig: defaults, YAML file, CHAPTER_OCR_* environment

QUICK START:
    from chapter_ocr.api import create_app

    app = create_app()

    # or from a shell
    chapter-ocr-server --port 3033 --cache-path ./cache
"""

__version__ = "1.0.0"

from .models import (
    BoundingBox,
    OcrResult,
    CacheEntry,
    RawChunk,
    JobProgress
)

from .config import (
    ServerConfig,
    get_server_config
)

from .reconstruction import (
    MergeConfig,
    auto_merge
)

from .pipeline import (
    PagePipelineService,
    get_page_pipeline_service
)

from .cache import (
    OcrCacheStore,
    get_cache_key
)

from .state import AppState

from .jobs import ChapterJobScheduler

__all__ = [
    '__version__',

    # Models
    'BoundingBox',
    'OcrResult',
    'CacheEntry',
    'RawChunk',
    'JobProgress',

    # Config
    'ServerConfig',
    'get_server_config',

    # Reconstruction
    'MergeConfig',
    'auto_merge',

    # Pipeline
    'PagePipelineService',
    'get_page_pipeline_service',

    # Cache & state
    'OcrCacheStore',
    'get_cache_key',
    'AppState',

    # Jobs
    'ChapterJobScheduler'
]
