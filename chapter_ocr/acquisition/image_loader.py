#!/usr/bin/env python3
"""
Image Loader - Authenticated page fetch and format-aware decode v1.0.0

Fetches page images over HTTP (optional basic auth) and decodes them:
- Common formats (PNG, JPEG, WebP, GIF, ...) go through Pillow
- AVIF goes through a dedicated decoder (imagecodecs) because high-bit-depth
  AVIF is poorly supported by general decoders; 16-bit channels are reduced
  to 8-bit by keeping the high byte

Usage:
    from chapter_ocr.acquisition.image_loader import fetch_image_bytes, decode_image

    data = fetch_image_bytes(url, user="reader", password="secret")
    image = decode_image(data)
"""

import io
import logging
from typing import Optional

import numpy as np
import requests
from requests.auth import HTTPBasicAuth
from PIL import Image, UnidentifiedImageError

from ..support.exceptions import FetchError, DecodeError

logger = logging.getLogger(__name__)

AVIF_BRANDS = (b"avif", b"avis")
SUPPORTED_MODES = ("RGB", "RGBA", "L")
HIGH_BIT_MODES = ("I;16", "I;16B", "I;16L", "I;16N", "I")


def fetch_image_bytes(
    url: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    timeout: float = 30.0
) -> bytes:
    """
    Download a page image.

    Args:
        url: Image URL
        user: Basic-auth user name (auth is only sent when given)
        password: Basic-auth password (empty when omitted)
        timeout: Request timeout in seconds

    Returns:
        Raw response body

    Raises:
        FetchError: network failure, timeout or non-2xx status
    """
    auth = HTTPBasicAuth(user, password or "") if user else None

    try:
        resp = requests.get(url, auth=auth, timeout=timeout)
        resp.raise_for_status()
    except requests.Timeout as e:
        raise FetchError(f"Timed out fetching {url}") from e
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        raise FetchError(f"Fetch failed for {url}: HTTP {status}") from e
    except requests.RequestException as e:
        raise FetchError(f"Fetch failed for {url}: {e}") from e

    logger.debug(f"Fetched {url} ({len(resp.content)} bytes)")
    return resp.content


def is_avif(data: bytes) -> bool:
    """Sniff the ISO-BMFF ftyp box for an AVIF brand."""
    if len(data) < 12 or data[4:8] != b"ftyp":
        return False
    box_size = int.from_bytes(data[0:4], "big")
    header = data[8:min(len(data), max(box_size, 16))]
    # major brand, then minor version, then compatible brands
    brands = [header[0:4]] + [header[i:i + 4] for i in range(8, len(header) - 3, 4)]
    return any(brand in AVIF_BRANDS for brand in brands)


def downsample_to_8bit(pixels: np.ndarray, bit_depth: int = 16) -> np.ndarray:
    """
    Reduce a high-bit-depth pixel array to uint8 by keeping the high byte.

    Args:
        pixels: Integer pixel array (H, W) or (H, W, C)
        bit_depth: Significant bits per channel in `pixels`

    Returns:
        uint8 array of the same shape
    """
    if pixels.dtype == np.uint8:
        return pixels
    if not np.issubdtype(pixels.dtype, np.integer):
        raise DecodeError(f"Unsupported pixel type: {pixels.dtype}")
    if bit_depth <= 8:
        return np.clip(pixels, 0, 255).astype(np.uint8)

    widened = np.clip(pixels.astype(np.uint32), 0, (1 << bit_depth) - 1)
    return (widened >> (bit_depth - 8)).astype(np.uint8)


def _avif_bit_depth(data: bytes, pixels: np.ndarray) -> int:
    """Read bits per channel from the 'pixi' property box."""
    idx = data.find(b"pixi")
    # fourcc, version+flags (4), channel count (1), then one byte per channel
    if idx != -1 and idx + 9 < len(data):
        bits = data[idx + 9]
        if 8 <= bits <= 16:
            return bits
    return 16 if pixels.dtype == np.uint16 else 8


def decode_avif(data: bytes) -> Image.Image:
    """Decode AVIF bytes through imagecodecs, downsampling to 8-bit."""
    import imagecodecs

    try:
        pixels = imagecodecs.avif_decode(data)
    except Exception as e:
        raise DecodeError(f"AVIF decode failed: {e}") from e

    pixels = downsample_to_8bit(pixels, _avif_bit_depth(data, pixels))

    if pixels.ndim == 3 and pixels.shape[2] == 1:
        pixels = pixels[:, :, 0]
    if pixels.ndim == 3 and pixels.shape[2] not in (3, 4):
        raise DecodeError(f"Unsupported AVIF channel count: {pixels.shape[2]}")

    return Image.fromarray(pixels)


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into an 8-bit Pillow image (RGB, RGBA or L).

    Raises:
        DecodeError: unsupported or corrupt image
    """
    if not data:
        raise DecodeError("Empty image data")

    if is_avif(data):
        logger.debug("AVIF detected, using dedicated decoder")
        return decode_avif(data)

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e

    if image.mode in HIGH_BIT_MODES:
        # mode I holds 16-bit PNG samples in an int32 container
        pixels = downsample_to_8bit(np.asarray(image), 16)
        return Image.fromarray(pixels)

    if image.mode not in SUPPORTED_MODES:
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")

    return image
