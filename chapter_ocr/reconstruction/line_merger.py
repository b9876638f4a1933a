#!/usr/bin/env python3
"""
Line Merger - Geometric clustering of fragmented oracle lines v1.0.0

The detector often splits one visual line or speech balloon into several
detections. This module reassembles them per band using geometry alone:

1. Boxes are scaled so the band is 1000 units wide
2. Lines are sorted top-down and, for very tall bands, partitioned into
   sub-bands no taller than 3000 units
3. Per sub-band, robust medians of the cross-axis extent (line height for
   horizontal text, column width for vertical text) calibrate thresholds
4. Same-orientation pairs that pass the font-ratio, gap and overlap gates are
   joined with Union-Find
5. Each multi-member group becomes one merged OcrResult in reading order

Input and output boxes are band pixels.
"""

import logging
from functools import cmp_to_key
from dataclasses import dataclass
from typing import List

from ..models.ocr_models import BoundingBox, OcrResult, VERTICAL, HORIZONTAL
from .union_find import UnionFind

logger = logging.getLogger(__name__)

ZERO_WIDTH_SPACE = "\u200b"
SORT_TIE_EPSILON = 0.001


@dataclass
class MergeConfig:
    """Thresholds for line merging."""
    enabled: bool = True
    dist_k: float = 1.2
    font_ratio: float = 1.3
    perp_tol: float = 0.5
    overlap_min: float = 0.1
    min_line_ratio: float = 0.5
    font_ratio_for_mixed: float = 1.1
    mixed_min_overlap_ratio: float = 0.5
    add_space_on_merge: bool = False
    sub_band_limit: float = 3000.0
    norm_width: float = 1000.0
    default_median: float = 20.0


@dataclass
class _ScaledLine:
    index: int
    is_vertical: bool
    font_size: float
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def median(values: List[float]) -> float:
    """Median of `values`; 0.0 when empty, mean of the middle pair when even."""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def _scale_lines(lines: List[OcrResult], scale: float) -> List[_ScaledLine]:
    scaled = []
    for idx, line in enumerate(lines):
        box = line.tight_bounding_box
        nw = box.width * scale
        nh = box.height * scale
        is_vertical = nw <= nh
        scaled.append(_ScaledLine(
            index=idx,
            is_vertical=is_vertical,
            font_size=nw if is_vertical else nh,
            x=box.x * scale,
            y=box.y * scale,
            width=nw,
            height=nh,
        ))
    return scaled


def _should_merge(a: _ScaledLine, b: _ScaledLine, rob_h: float, rob_w: float, config: MergeConfig) -> bool:
    if a.is_vertical != b.is_vertical:
        return False
    if a.font_size <= 0 or b.font_size <= 0:
        return False

    med_o = rob_w if a.is_vertical else rob_h
    a_primary = a.font_size >= med_o * config.min_line_ratio
    b_primary = b.font_size >= med_o * config.min_line_ratio
    mixed = a_primary != b_primary

    ratio_limit = config.font_ratio_for_mixed if mixed else config.font_ratio
    ratio = max(a.font_size / b.font_size, b.font_size / a.font_size)
    if ratio > ratio_limit:
        return False

    # gap along the reading-adjacent axis, overlap along the other
    if a.is_vertical:
        gap = max(0.0, max(a.x, b.x) - min(a.right, b.right))
        overlap = max(0.0, min(a.bottom, b.bottom) - max(a.y, b.y))
        min_perp = min(a.height, b.height)
    else:
        gap = max(0.0, max(a.y, b.y) - min(a.bottom, b.bottom))
        overlap = max(0.0, min(a.right, b.right) - max(a.x, b.x))
        min_perp = min(a.width, b.width)

    if gap > med_o * config.dist_k:
        return False

    if min_perp > 0:
        overlap_ratio = overlap / min_perp
        if overlap_ratio < config.overlap_min:
            return False
        if mixed and overlap_ratio < config.mixed_min_overlap_ratio:
            return False

    return True


def group_lines(
    lines: List[OcrResult],
    band_width: int,
    band_height: int,
    config: MergeConfig = None
) -> List[List[OcrResult]]:
    """
    Cluster band lines into groups that belong to the same logical line/block.

    Args:
        lines: Band-pixel lines from one band
        band_width: Band width in pixels
        band_height: Band height in pixels
        config: Merge thresholds (defaults if omitted)

    Returns:
        Groups of lines; every input line appears in exactly one group
    """
    config = config or MergeConfig()
    if not lines:
        return []
    if band_width <= 0:
        return [[line] for line in lines]

    scale = config.norm_width / band_width
    scaled = sorted(_scale_lines(lines, scale), key=lambda line: line.y)
    split_sub_bands = band_height * scale > config.sub_band_limit

    groups: List[List[OcrResult]] = []
    start = 0
    while start < len(scaled):
        end = len(scaled) - 1
        if split_sub_bands:
            end = start
            top = scaled[start].y
            for i in range(start + 1, len(scaled)):
                if scaled[i].bottom - top <= config.sub_band_limit:
                    end = i
                else:
                    break

        sub_band = scaled[start:end + 1]
        rob_h = median([l.height for l in sub_band if not l.is_vertical]) or config.default_median
        rob_w = median([l.width for l in sub_band if l.is_vertical]) or config.default_median

        uf = UnionFind(len(sub_band))
        for i in range(len(sub_band)):
            for j in range(i + 1, len(sub_band)):
                if _should_merge(sub_band[i], sub_band[j], rob_h, rob_w, config):
                    uf.union(i, j)

        for members in uf.groups():
            groups.append([lines[sub_band[m].index] for m in members])

        start = end + 1

    return groups


def _compare_reading_order(is_vertical: bool):
    """
    Vertical: right-to-left columns, top-to-bottom within a column.
    Horizontal: top-to-bottom rows, left-to-right within a row.
    """
    def compare(a: OcrResult, b: OcrResult) -> int:
        ba = a.tight_bounding_box
        bb = b.tight_bounding_box
        if is_vertical:
            primary = bb.center_x - ba.center_x
            secondary = ba.center_y - bb.center_y
        else:
            primary = ba.center_y - bb.center_y
            secondary = ba.center_x - bb.center_x
        diff = primary if abs(primary) > SORT_TIE_EPSILON else secondary
        return (diff > 0) - (diff < 0)
    return compare


def merge_group(group: List[OcrResult], config: MergeConfig = None) -> OcrResult:
    """Collapse a multi-line group into one merged result."""
    config = config or MergeConfig()

    vertical_count = sum(
        1 for line in group
        if line.tight_bounding_box.height > line.tight_bounding_box.width
    )
    is_vertical = vertical_count > len(group) / 2

    ordered = sorted(group, key=cmp_to_key(_compare_reading_order(is_vertical)))
    joiner = " " if config.add_space_on_merge else ZERO_WIDTH_SPACE
    text = joiner.join(line.text for line in ordered)

    min_x = min(line.tight_bounding_box.x for line in group)
    min_y = min(line.tight_bounding_box.y for line in group)
    max_r = max(line.tight_bounding_box.right for line in group)
    max_b = max(line.tight_bounding_box.bottom for line in group)

    return OcrResult(
        text=text,
        tight_bounding_box=BoundingBox(x=min_x, y=min_y, width=max_r - min_x, height=max_b - min_y),
        is_merged=True,
        forced_orientation=VERTICAL if is_vertical else HORIZONTAL,
    )


def auto_merge(
    lines: List[OcrResult],
    band_width: int,
    band_height: int,
    config: MergeConfig = None
) -> List[OcrResult]:
    """
    Merge fragmented lines of one band.

    Returns the input unchanged when merging is disabled or there are fewer
    than two lines. Singleton groups pass through untouched.
    """
    config = config or MergeConfig()
    if not config.enabled or len(lines) < 2:
        return list(lines)

    merged = []
    for group in group_lines(lines, band_width, band_height, config):
        if len(group) == 1:
            merged.append(group[0])
        else:
            merged.append(merge_group(group, config))

    if len(merged) < len(lines):
        logger.debug(f"Merged {len(lines)} lines into {len(merged)}")
    return merged
