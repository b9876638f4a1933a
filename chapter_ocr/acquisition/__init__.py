"""
Acquisition Module - Page image fetch, decode and banding

Exports:
- fetch_image_bytes: HTTP fetch with optional basic auth
- decode_image: format-aware decode (dedicated AVIF path)
- downsample_to_8bit: high-byte reduction of 16-bit channels
- ImageBand, iter_bands, encode_band_png: bounded-height slicing
"""

from .image_loader import fetch_image_bytes, decode_image, downsample_to_8bit, is_avif
from .chunker import ImageBand, iter_bands, encode_band_png, DEFAULT_MAX_HEIGHT

__all__ = [
    'fetch_image_bytes',
    'decode_image',
    'downsample_to_8bit',
    'is_avif',
    'ImageBand',
    'iter_bands',
    'encode_band_png',
    'DEFAULT_MAX_HEIGHT'
]
