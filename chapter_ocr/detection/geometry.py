"""
Geometry Normalizer - Oracle geometry to band-pixel boxes

Oracle lines carry normalized (0-1) centre/size plus a rotation angle. This
module turns them into tight axis-aligned boxes in band-pixel space, classifies
orientation and applies CJK-aware whitespace stripping.
"""

import math
import re
from typing import List, Optional, Tuple

from ..models.ocr_models import BoundingBox, OcrResult, VERTICAL, HORIZONTAL
from .line_detector import DetectedLine, DetectedParagraph

ROTATION_EPSILON = 0.1
RIGHT_ANGLE_TOLERANCE = 0.5

# Han (incl. iteration marks), Hiragana, Katakana (incl. half-width)
CJK_PATTERN = re.compile(
    "["
    "\u3005-\u3007"
    "\u3040-\u309F"
    "\u30A0-\u30FF"
    "\u31F0-\u31FF"
    "\u3400-\u4DBF"
    "\u4E00-\u9FFF"
    "\uF900-\uFAFF"
    "\uFF66-\uFF9F"
    "\U00020000-\U0002FA1F"
    "]"
)
WHITESPACE_PATTERN = re.compile(r"\s+")


def rotated_envelope(
    cx: float,
    cy: float,
    width: float,
    height: float,
    rotation: float
) -> Tuple[float, float, float, float]:
    """
    Axis-aligned envelope of a box rotated about its centre.

    Args:
        cx, cy: Box centre
        width, height: Unrotated box size
        rotation: Angle in radians

    Returns:
        (x, y, width, height) of the tight axis-aligned box
    """
    if rotation == 0:
        return cx - width / 2, cy - height / 2, width, height

    cos_r = math.cos(rotation)
    sin_r = math.sin(rotation)
    half_w = width / 2
    half_h = height / 2

    xs = []
    ys = []
    for dx, dy in ((-half_w, -half_h), (half_w, -half_h), (half_w, half_h), (-half_w, half_h)):
        xs.append(cx + dx * cos_r - dy * sin_r)
        ys.append(cy + dx * sin_r + dy * cos_r)

    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    return min_x, min_y, max_x - min_x, max_y - min_y


def classify_orientation(width: float, height: float, rotation: float = 0.0) -> str:
    """
    Vertical or horizontal reading direction for one line.

    A line rotated close to +-90 degrees is vertical regardless of its box
    shape; an unrotated line is vertical when it is at least as tall as wide.
    Angles are wrapped into [-pi, pi] first.
    """
    rotation = math.remainder(rotation, 2 * math.pi)
    if abs(rotation) > ROTATION_EPSILON:
        is_vertical = abs(abs(rotation) - math.pi / 2) < RIGHT_ANGLE_TOLERANCE
    else:
        is_vertical = width <= height
    return VERTICAL if is_vertical else HORIZONTAL


def contains_cjk(text: str) -> bool:
    return CJK_PATTERN.search(text) is not None


def strip_cjk_whitespace(text: str) -> str:
    """Remove all whitespace from CJK text; other text is returned unchanged."""
    if contains_cjk(text):
        return WHITESPACE_PATTERN.sub("", text)
    return text


def normalize_line(line: DetectedLine, band_width: int, band_height: int) -> Optional[OcrResult]:
    """
    Convert one oracle line to a band-pixel OcrResult.

    Returns:
        None when the line has no geometry or no visible text
    """
    geom = line.geometry
    if geom is None:
        return None

    text = strip_cjk_whitespace(line.text)
    if not text.strip():
        return None

    px_cx = geom.center_x * band_width
    px_cy = geom.center_y * band_height
    px_w = geom.width * band_width
    px_h = geom.height * band_height

    x, y, w, h = rotated_envelope(px_cx, px_cy, px_w, px_h, geom.rotation)

    return OcrResult(
        text=text,
        tight_bounding_box=BoundingBox(
            x=x,
            y=y,
            width=w,
            height=h,
            rotation=geom.rotation if geom.rotation else None,
        ),
        is_merged=False,
        forced_orientation=classify_orientation(px_w, px_h, geom.rotation),
    )


def normalize_paragraphs(
    paragraphs: List[DetectedParagraph],
    band_width: int,
    band_height: int
) -> List[OcrResult]:
    """Flatten oracle paragraphs into band-pixel lines, dropping unusable ones."""
    results = []
    for para in paragraphs:
        for line in para.lines:
            result = normalize_line(line, band_width, band_height)
            if result is not None:
                results.append(result)
    return results
