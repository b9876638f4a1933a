"""
Coordinate Stitcher - Band pixels to whole-image normalized coordinates

merge_and_stitch is the single path from recorded band output to final
results; the live pipeline and fixture replay both go through it.
"""

from dataclasses import replace
from typing import List, Optional

from ..models.ocr_models import OcrResult, RawChunk
from ..reconstruction.line_merger import MergeConfig, auto_merge


def stitch_result(result: OcrResult, global_y: int, full_width: int, full_height: int) -> OcrResult:
    """
    Map one band-pixel result into [0, 1] space of the full image.

    x and width are divided by the full width; y is shifted by the band's
    offset before dividing by the full height. Rotation is kept as is.
    """
    box = result.tight_bounding_box
    stitched = replace(
        box,
        x=box.x / full_width,
        y=(box.y + global_y) / full_height,
        width=box.width / full_width,
        height=box.height / full_height,
    )
    return replace(result, tight_bounding_box=stitched)


def stitch_results(
    results: List[OcrResult],
    global_y: int,
    full_width: int,
    full_height: int
) -> List[OcrResult]:
    return [stitch_result(r, global_y, full_width, full_height) for r in results]


def merge_and_stitch(chunks: List[RawChunk], merge_config: Optional[MergeConfig] = None) -> List[OcrResult]:
    """Merge each band independently, then stitch into full-image space."""
    results: List[OcrResult] = []
    for chunk in chunks:
        merged = auto_merge(chunk.lines, chunk.width, chunk.height, merge_config)
        results.extend(stitch_results(merged, chunk.global_y, chunk.full_width, chunk.full_height))
    return results
