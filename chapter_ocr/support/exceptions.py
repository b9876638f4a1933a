"""
Exceptions - Error taxonomy for the page OCR pipeline

Every failure that can leave a component boundary is one of:
- FetchError: network, auth or non-2xx response while downloading a page
- DecodeError: unsupported or corrupt image bytes
- OracleError: the external line detector failed or answered garbage
- PersistenceError: the cache file could not be written

PersistenceError never reaches API callers; the cache store logs it and
retries on the next mutation.
"""


class ChapterOcrError(Exception):
    """Base class for all pipeline errors."""


class FetchError(ChapterOcrError):
    """Image download failed."""


class DecodeError(ChapterOcrError):
    """Image bytes could not be decoded."""


class OracleError(ChapterOcrError):
    """External line detector call failed."""


class PersistenceError(ChapterOcrError):
    """Cache file write failed."""
