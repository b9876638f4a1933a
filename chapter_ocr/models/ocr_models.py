"""
OCR Models - Data classes for OCR results, cache entries and job progress

JSON shapes match the on-disk cache file (ocr-cache.json):
    OcrResult:   {"text", "tightBoundingBox": {x, y, width, height, [rotation]},
                  "isMerged"?, "forcedOrientation"?}
    CacheEntry:  {"context", "data": [OcrResult]}
    RawChunk:    {"lines", "width", "height", "global_y", "full_width", "full_height"}
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

VERTICAL = "vertical"
HORIZONTAL = "horizontal"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box. Pixel or normalized depending on pipeline stage."""
    x: float
    y: float
    width: float
    height: float
    rotation: Optional[float] = None

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if self.rotation is not None:
            data["rotation"] = self.rotation
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoundingBox":
        rotation = data.get("rotation")
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            rotation=float(rotation) if rotation is not None else None,
        )


@dataclass(frozen=True)
class OcrResult:
    """One text region: a raw oracle line or a merged line/balloon."""
    text: str
    tight_bounding_box: BoundingBox
    is_merged: Optional[bool] = None
    forced_orientation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "text": self.text,
            "tightBoundingBox": self.tight_bounding_box.to_dict(),
        }
        if self.is_merged is not None:
            data["isMerged"] = self.is_merged
        if self.forced_orientation is not None:
            data["forcedOrientation"] = self.forced_orientation
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OcrResult":
        return cls(
            text=str(data["text"]),
            tight_bounding_box=BoundingBox.from_dict(data["tightBoundingBox"]),
            is_merged=data.get("isMerged"),
            forced_orientation=data.get("forcedOrientation"),
        )


@dataclass
class CacheEntry:
    """Cached OCR output for one page image."""
    context: str
    data: List[OcrResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": self.context,
            "data": [result.to_dict() for result in self.data],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            context=str(data.get("context", "")),
            data=[OcrResult.from_dict(item) for item in data.get("data", [])],
        )


@dataclass
class RawChunk:
    """
    One decoded band's pre-merge lines plus the geometry needed to stitch it.

    Line boxes are in band pixels. Serialized chunks are replayable
    regression fixtures that need no network access.
    """
    lines: List[OcrResult]
    width: int
    height: int
    global_y: int
    full_width: int
    full_height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "width": self.width,
            "height": self.height,
            "global_y": self.global_y,
            "full_width": self.full_width,
            "full_height": self.full_height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawChunk":
        return cls(
            lines=[OcrResult.from_dict(item) for item in data.get("lines", [])],
            width=int(data["width"]),
            height=int(data["height"]),
            global_y=int(data["global_y"]),
            full_width=int(data["full_width"]),
            full_height=int(data["full_height"]),
        )


@dataclass
class JobProgress:
    """Progress of an active chapter job."""
    current: int
    total: int
