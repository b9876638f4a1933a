"""
Detection Module - Line detector boundary and geometry normalization

Exports:
- LineDetector: capability interface for the external detector
- HttpLineDetector, get_line_detector: HTTP adapter and singleton accessor
- DetectedParagraph, DetectedLine, LineGeometry: oracle output types
- normalize_paragraphs, normalize_line: oracle lines to band-pixel OcrResults
"""

from .line_detector import (
    LineDetector,
    HttpLineDetector,
    get_line_detector,
    DetectedParagraph,
    DetectedLine,
    LineGeometry,
    parse_detector_response
)
from .geometry import (
    rotated_envelope,
    classify_orientation,
    contains_cjk,
    strip_cjk_whitespace,
    normalize_line,
    normalize_paragraphs
)

__all__ = [
    'LineDetector',
    'HttpLineDetector',
    'get_line_detector',
    'DetectedParagraph',
    'DetectedLine',
    'LineGeometry',
    'parse_detector_response',
    'rotated_envelope',
    'classify_orientation',
    'contains_cjk',
    'strip_cjk_whitespace',
    'normalize_line',
    'normalize_paragraphs'
]
