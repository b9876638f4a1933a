"""
Models Module - Data classes shared by every pipeline stage

Exports:
- BoundingBox, OcrResult: text regions and their boxes
- CacheEntry: cached page output
- RawChunk: replayable pre-merge band fixture
- JobProgress: chapter job counters
"""

from .ocr_models import (
    BoundingBox,
    OcrResult,
    CacheEntry,
    RawChunk,
    JobProgress,
    VERTICAL,
    HORIZONTAL
)

__all__ = [
    'BoundingBox',
    'OcrResult',
    'CacheEntry',
    'RawChunk',
    'JobProgress',
    'VERTICAL',
    'HORIZONTAL'
]
