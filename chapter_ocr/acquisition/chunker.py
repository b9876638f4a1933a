"""
Chunker - Slice tall page images into bounded-height horizontal bands

Each band is full-width and at most `max_height` pixels tall; the last band
may be shorter. Bounding the band height bounds the cost of each oracle call.
"""

import io
from dataclasses import dataclass
from typing import Iterator

from PIL import Image

DEFAULT_MAX_HEIGHT = 3000


@dataclass
class ImageBand:
    """One horizontal slice of a page image."""
    image: Image.Image
    global_y: int
    width: int
    height: int


def iter_bands(image: Image.Image, max_height: int = DEFAULT_MAX_HEIGHT) -> Iterator[ImageBand]:
    """
    Yield consecutive bands from top to bottom.

    Args:
        image: Decoded page image
        max_height: Maximum band height in pixels

    Yields:
        ImageBand with its vertical offset in the full image
    """
    if max_height <= 0:
        raise ValueError(f"max_height must be positive, got {max_height}")

    full_w, full_h = image.size
    y_curr = 0
    while y_curr < full_h:
        h_curr = min(max_height, full_h - y_curr)
        if h_curr == 0:
            break

        band = image.crop((0, y_curr, full_w, y_curr + h_curr))
        yield ImageBand(image=band, global_y=y_curr, width=full_w, height=h_curr)

        y_curr += max_height


def encode_band_png(band: ImageBand) -> bytes:
    """Encode a band as PNG, the format sent to the line detector."""
    buf = io.BytesIO()
    band.image.save(buf, format="PNG")
    return buf.getvalue()
