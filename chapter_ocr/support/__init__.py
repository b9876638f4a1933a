"""
Support Module - Shared helpers

Exports:
- ChapterOcrError and its subclasses: pipeline error taxonomy
- ReadWriteLock: multi-reader / single-writer lock
"""

from .exceptions import (
    ChapterOcrError,
    FetchError,
    DecodeError,
    OracleError,
    PersistenceError
)
from .rw_lock import ReadWriteLock

__all__ = [
    'ChapterOcrError',
    'FetchError',
    'DecodeError',
    'OracleError',
    'PersistenceError',
    'ReadWriteLock'
]
