"""
Pipeline Module - Page-level OCR processing

Exports:
- PagePipelineService: fetch, band, detect, merge and stitch one page
- get_page_pipeline_service: singleton accessor
- stitch_result, stitch_results: band pixels to full-image fractions
- merge_and_stitch: per-band merge followed by stitching
"""

from .stitcher import stitch_result, stitch_results, merge_and_stitch
from .page_pipeline_service import PagePipelineService, get_page_pipeline_service

__all__ = [
    'PagePipelineService',
    'get_page_pipeline_service',
    'stitch_result',
    'stitch_results',
    'merge_and_stitch'
]
