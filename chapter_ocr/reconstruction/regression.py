#!/usr/bin/env python3
"""
Merge Regression - Replay captured detector output through merge + stitch v1.0.0

Layout of a data directory (searched recursively):
    <name>.png | .jpg | .jpeg | .webp | .avif   page image
    <name>.raw.json                             list of RawChunk (detector output)
    <name>.expected.json                        expected final results

Bounding boxes are excluded from comparison (tightBoundingBox keys are
removed from both sides), so fixtures pin grouping, text and orientation.

Environment flags:
    UPDATE_EXPECTED        overwrite expected files with the current output
    REGENERATE_RAW         re-run the detector and rewrite *.raw.json
    ONLY_GENERATE_MISSING  skip cases whose expected file already exists

Usage:
    python -m chapter_ocr.reconstruction.regression path/to/ocr-test-data
"""

import argparse
import json
import logging
import os
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..models.ocr_models import RawChunk
from ..pipeline.stitcher import merge_and_stitch
from .line_merger import ZERO_WIDTH_SPACE, MergeConfig

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".avif"}


@dataclass
class RegressionReport:
    """Outcome of one replay run."""
    passed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    generated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return (f"{len(self.passed)} passed | {len(self.failed)} failed | "
                f"{len(self.generated)} generated | {len(self.skipped)} skipped")


def sanitize_results(value: Any) -> Any:
    """Copy of `value` with every tightBoundingBox key removed, at any depth."""
    if isinstance(value, list):
        return [sanitize_results(item) for item in value]
    if isinstance(value, dict):
        return {k: sanitize_results(v) for k, v in value.items() if k != "tightBoundingBox"}
    return value


def load_raw_chunks(path: Path) -> List[RawChunk]:
    with open(path, 'r', encoding='utf-8') as f:
        return [RawChunk.from_dict(item) for item in json.load(f)]


def write_json(path: Path, data: Any) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _ignorable(c: str) -> bool:
    return c.isspace() or c == ZERO_WIDTH_SPACE


def missing_characters(source: str, target: str) -> Dict[str, int]:
    """
    Characters of `target` not covered by `source`.

    Whitespace and the zero-width merge joiner are ignored on both sides.

    Each source character can be used once. An empty result means target is
    constructible from source.
    """
    available = Counter(c for c in source if not _ignorable(c))
    missing: Counter = Counter()
    for c in target:
        if _ignorable(c):
            continue
        if available[c] > 0:
            available[c] -= 1
        else:
            missing[c] += 1
    return dict(missing)


def _collect_text(value: Any) -> str:
    """Concatenate every "text" value found in a JSON-like structure."""
    if isinstance(value, list):
        return "".join(_collect_text(item) for item in value)
    if isinstance(value, dict):
        own = value.get("text")
        rest = "".join(_collect_text(v) for k, v in value.items() if k != "text")
        return (own if isinstance(own, str) else "") + rest
    return ""


def validate_expected_text(raw_path: Path, expected_path: Path) -> Dict[str, int]:
    """Check that an expected file only uses characters the detector produced."""
    with open(raw_path, 'r', encoding='utf-8') as f:
        raw_text = _collect_text(json.load(f))
    with open(expected_path, 'r', encoding='utf-8') as f:
        expected_text = _collect_text(json.load(f))
    return missing_characters(raw_text, expected_text)


def _flag(name: str) -> bool:
    return name in os.environ


def run_regression(
    data_dir: Path,
    config: Optional[MergeConfig] = None,
    raw_producer: Optional[Callable[[bytes], List[RawChunk]]] = None
) -> RegressionReport:
    """
    Replay every fixture under `data_dir`.

    Args:
        data_dir: Directory searched recursively for page images
        config: Merge thresholds (defaults if omitted)
        raw_producer: Produces RawChunks from image bytes when a raw fixture is
            missing or REGENERATE_RAW is set; cases without one are skipped

    Returns:
        RegressionReport listing each case by "<parent>/<stem>"
    """
    force_regen_raw = _flag("REGENERATE_RAW")
    only_missing = _flag("ONLY_GENERATE_MISSING")
    update_expected = _flag("UPDATE_EXPECTED")

    report = RegressionReport()

    for image_path in sorted(Path(data_dir).rglob("*")):
        if not image_path.is_file() or image_path.suffix.lower() not in IMAGE_EXTENSIONS:
            continue

        name = f"{image_path.parent.name or 'root'}/{image_path.stem}"
        raw_path = image_path.with_suffix(".raw.json")
        expected_path = image_path.with_suffix(".expected.json")

        if only_missing and expected_path.exists() and not update_expected and not force_regen_raw:
            report.skipped.append(name)
            continue

        if raw_path.exists() and not force_regen_raw:
            chunks = load_raw_chunks(raw_path)
        elif raw_producer is not None:
            logger.info(f"[OCR] Running detector for {name}")
            chunks = raw_producer(image_path.read_bytes())
            write_json(raw_path, [chunk.to_dict() for chunk in chunks])
        else:
            logger.warning(f"⚠️ No raw fixture for {name} and no detector available, skipping")
            report.skipped.append(name)
            continue

        actual = sanitize_results([r.to_dict() for r in merge_and_stitch(chunks, config)])

        if not expected_path.exists():
            logger.info(f"[NEW] Generating expected file for {name}")
            write_json(expected_path, actual)
            report.generated.append(name)
        elif update_expected:
            logger.info(f"[UPDATE] Overwriting expected file for {name}")
            write_json(expected_path, actual)
            report.generated.append(name)
        elif force_regen_raw:
            continue
        else:
            with open(expected_path, 'r', encoding='utf-8') as f:
                expected = sanitize_results(json.load(f))
            if expected == actual:
                report.passed.append(name)
            else:
                logger.error(f"❌ Mismatch in test case: {name}")
                report.failed.append(name)

    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay OCR merge regression fixtures")
    parser.add_argument("data_dir", type=Path, help="Directory with images and *.raw.json fixtures")
    parser.add_argument("--live", action="store_true",
                        help="Call the configured line detector for missing raw fixtures")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if not args.data_dir.exists():
        logger.error(f"❌ Test data not found: {args.data_dir}")
        return 1

    raw_producer = None
    if args.live:
        from ..pipeline.page_pipeline_service import get_page_pipeline_service
        raw_producer = get_page_pipeline_service().get_raw_chunks

    report = run_regression(args.data_dir, raw_producer=raw_producer)
    logger.info(f"Tests finished: {report.summary()}")
    for name in report.failed:
        logger.error(f"  failed: {name}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
