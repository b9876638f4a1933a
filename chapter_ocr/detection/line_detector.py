#!/usr/bin/env python3
"""
Line Detector Client - External text-line detection oracle v1.0.0

The oracle is a black box: given a PNG band and a language hint it returns
paragraphs of text lines, each with normalized (0-1, band-relative) and
possibly rotated geometry. The pipeline depends only on the LineDetector
capability interface; HttpLineDetector is the production adapter and unit
tests substitute their own implementation.

Expected detector response:
{
    "paragraphs": [
        {"lines": [
            {"text": "...",
             "geometry": {"center_x": 0.5, "center_y": 0.1,
                          "width": 0.05, "height": 0.3, "rotation": 0.0}}
        ]}
    ]
}

Usage:
    from chapter_ocr.detection.line_detector import get_line_detector

    detector = get_line_detector()
    paragraphs = detector.detect(png_bytes, "ja")
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Protocol, Tuple, Union

import requests

from ..support.exceptions import OracleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineGeometry:
    """Normalized geometry of one detected line (band-relative)."""
    center_x: float
    center_y: float
    width: float
    height: float
    rotation: float = 0.0


@dataclass(frozen=True)
class DetectedLine:
    """One line as reported by the oracle."""
    text: str
    geometry: Optional[LineGeometry] = None


@dataclass
class DetectedParagraph:
    """Group of lines the oracle considers one paragraph."""
    lines: List[DetectedLine] = field(default_factory=list)


class LineDetector(Protocol):
    """Capability interface for the external line detector."""

    def detect(
        self,
        image_bytes: bytes,
        language_hint: str,
        proxy: Optional[str] = None
    ) -> List[DetectedParagraph]:
        ...


class HttpLineDetector:
    """
    Line detector reached over HTTP.

    Every call carries an explicit (connect, read) timeout so a stalled
    detector cannot hold a job worker forever.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Union[float, Tuple[float, float]] = (10.0, 60.0)
    ):
        """
        Initialize detector client.

        Args:
            base_url: Base URL of the detector service (default from config)
            timeout: Request timeout in seconds, or (connect, read)
        """
        if base_url is None:
            from ..config.config_manager import get_server_config
            base_url = get_server_config().detector_url

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.detect_endpoint = "/detect"

        logger.info(f"HttpLineDetector initialized: {self.base_url}")

    def detect(
        self,
        image_bytes: bytes,
        language_hint: str,
        proxy: Optional[str] = None
    ) -> List[DetectedParagraph]:
        """
        Send one PNG band to the detector.

        Args:
            image_bytes: PNG-encoded band
            language_hint: Language code passed to the detector (e.g. "ja")
            proxy: Optional proxy URL for the detector call

        Returns:
            Detected paragraphs in oracle order

        Raises:
            OracleError: timeout, transport error, non-2xx or malformed body
        """
        files = {'file': ('band.png', image_bytes, 'image/png')}
        data = {'lang': language_hint}
        proxies = {'http': proxy, 'https': proxy} if proxy else None

        try:
            resp = requests.post(
                f"{self.base_url}{self.detect_endpoint}",
                files=files,
                data=data,
                proxies=proxies,
                timeout=self.timeout
            )
            resp.raise_for_status()
            body = resp.json()
        except requests.Timeout as e:
            raise OracleError("Line detector timed out") from e
        except requests.RequestException as e:
            raise OracleError(f"Line detector request failed: {e}") from e
        except ValueError as e:
            raise OracleError(f"Line detector returned invalid JSON: {e}") from e

        return parse_detector_response(body)


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def parse_geometry(data: Optional[Dict[str, Any]]) -> Optional[LineGeometry]:
    """Parse a geometry mapping; snake_case and camelCase keys are accepted."""
    if not isinstance(data, dict):
        return None
    try:
        return LineGeometry(
            center_x=float(_first(data, "center_x", "centerX")),
            center_y=float(_first(data, "center_y", "centerY")),
            width=float(_first(data, "width")),
            height=float(_first(data, "height")),
            rotation=float(_first(data, "rotation", "rotation_z", "rotationZ", default=0.0)),
        )
    except (TypeError, ValueError):
        return None


def parse_detector_response(body: Any) -> List[DetectedParagraph]:
    """
    Convert a detector JSON body into DetectedParagraph objects.

    Raises:
        OracleError: body does not have the expected shape
    """
    if not isinstance(body, dict) or not isinstance(body.get("paragraphs", []), list):
        raise OracleError("Line detector response has no paragraphs list")

    paragraphs = []
    for para in body.get("paragraphs", []):
        if not isinstance(para, dict):
            continue
        lines = []
        for line in para.get("lines", []) or []:
            if not isinstance(line, dict):
                continue
            lines.append(DetectedLine(
                text=str(line.get("text", "")),
                geometry=parse_geometry(line.get("geometry"))
            ))
        paragraphs.append(DetectedParagraph(lines=lines))

    logger.debug(f"Detector returned {sum(len(p.lines) for p in paragraphs)} lines")
    return paragraphs


# Singleton instance
_line_detector_instance = None


def get_line_detector(base_url: Optional[str] = None) -> HttpLineDetector:
    """Get or create singleton HttpLineDetector instance."""
    global _line_detector_instance

    if _line_detector_instance is None:
        from ..config.config_manager import get_server_config
        config = get_server_config()
        _line_detector_instance = HttpLineDetector(
            base_url=base_url or config.detector_url,
            timeout=config.detector_timeout
        )

    return _line_detector_instance
