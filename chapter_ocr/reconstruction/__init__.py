"""
Reconstruction Module - Merging fragmented detector lines

Exports:
- MergeConfig: merge thresholds
- auto_merge: merge one band's lines
- group_lines: clustering step on its own
- median: robust statistic used for threshold calibration
- UnionFind: disjoint-set forest

The fixture replay tool lives in reconstruction.regression and is run as a
module (python -m chapter_ocr.reconstruction.regression).
"""

from .union_find import UnionFind
from .line_merger import MergeConfig, auto_merge, group_lines, merge_group, median

__all__ = [
    'UnionFind',
    'MergeConfig',
    'auto_merge',
    'group_lines',
    'merge_group',
    'median'
]
