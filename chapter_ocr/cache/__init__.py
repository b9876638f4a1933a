"""
Cache Module - Persistent OCR result cache

Exports:
- OcrCacheStore: thread-safe, atomically saved cache
- get_cache_key: URL to cache key (path only)
"""

from .ocr_cache import OcrCacheStore, get_cache_key, DEFAULT_CACHE_FILE

__all__ = [
    'OcrCacheStore',
    'get_cache_key',
    'DEFAULT_CACHE_FILE'
]
