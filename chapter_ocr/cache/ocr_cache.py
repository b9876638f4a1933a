#!/usr/bin/env python3
"""
OCR Cache - Path-keyed, atomically persisted store of page results v1.0.0

Entries are keyed by the request path so the same page fetched through a
different host, port or query string maps to one entry. The whole map is
written to ocr-cache.json via a temp file + fsync + rename, so a crash during
a save leaves either the previous file or the new one, never a mix.

Locking:
- _lock (ReadWriteLock) guards the in-memory map
- _save_lock serializes writers of the file; try_save() skips instead of
  waiting when a save is already running
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Any, Optional
from urllib.parse import urlsplit

from ..models.ocr_models import CacheEntry
from ..support.exceptions import PersistenceError
from ..support.rw_lock import ReadWriteLock

logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILE = "ocr-cache.json"


def get_cache_key(url: str) -> str:
    """
    Cache key for a page URL.

    Absolute URLs reduce to their path; anything else is cut at the first '?'.
    """
    parts = urlsplit(url)
    if parts.scheme and parts.netloc:
        return parts.path
    return url.split('?', 1)[0]


class OcrCacheStore:
    """Thread-safe OCR result cache backed by a JSON file."""

    def __init__(self, cache_dir: str, file_name: str = DEFAULT_CACHE_FILE):
        """
        Args:
            cache_dir: Directory holding the cache file (created if missing)
            file_name: Cache file name
        """
        self.cache_dir = Path(cache_dir)
        self.cache_path = self.cache_dir / file_name
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._save_lock = threading.Lock()
        self.load()

    def load(self) -> int:
        """
        Replace the in-memory map with the file contents.

        A missing, unreadable or corrupt file yields an empty cache.

        Returns:
            Number of entries loaded
        """
        entries: Dict[str, CacheEntry] = {}

        if self.cache_path.exists():
            try:
                with open(self.cache_path, 'r', encoding='utf-8') as f:
                    raw = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"⚠️ Cache file {self.cache_path} unreadable, starting empty: {e}")
                raw = {}

            if not isinstance(raw, dict):
                logger.warning(f"⚠️ Cache file {self.cache_path} is not a JSON object, starting empty")
                raw = {}

            for key, value in raw.items():
                try:
                    entries[key] = CacheEntry.from_dict(value)
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.warning(f"Skipping malformed cache entry {key}: {e}")
        else:
            logger.info(f"No cache file at {self.cache_path}, starting empty")

        with self._lock.write():
            self._entries = entries

        logger.info(f"Loaded {len(entries)} cache entries from {self.cache_path}")
        return len(entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock.read():
            return self._entries.get(key)

    def contains(self, key: str) -> bool:
        with self._lock.read():
            return key in self._entries

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def put(self, key: str, entry: CacheEntry, persist: bool = True) -> None:
        """Insert or replace an entry; saves immediately unless persist is False."""
        with self._lock.write():
            self._entries[key] = entry
        if persist:
            self.save()

    def clear(self) -> None:
        """Drop every entry and persist the empty map."""
        with self._lock.write():
            self._entries = {}
        logger.info("Cache cleared")
        self.save()

    def export(self, context: Optional[str] = None) -> Dict[str, Any]:
        """
        Serialize entries in the on-disk format.

        Args:
            context: Only include entries recorded with this context
        """
        with self._lock.read():
            return {
                key: entry.to_dict()
                for key, entry in self._entries.items()
                if context is None or entry.context == context
            }

    def import_entries(self, data: Dict[str, Any]) -> int:
        """
        Merge entries from an exported map. Existing keys are kept as is.

        Returns:
            Number of entries added
        """
        parsed: Dict[str, CacheEntry] = {}
        for key, value in data.items():
            try:
                parsed[key] = value if isinstance(value, CacheEntry) else CacheEntry.from_dict(value)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed imported entry {key}: {e}")

        added = 0
        with self._lock.write():
            for key, entry in parsed.items():
                if key not in self._entries:
                    self._entries[key] = entry
                    added += 1

        if added:
            logger.info(f"Imported {added} cache entries")
            self.save()
        return added

    def save(self) -> bool:
        """
        Persist the whole map atomically, waiting for any running save.

        Returns:
            True on success; False if the write failed (logged, never raised)
        """
        with self._save_lock:
            return self._write_snapshot()

    def try_save(self) -> Optional[bool]:
        """
        Save unless another save is in progress.

        Returns:
            None when skipped, otherwise the save() result
        """
        if not self._save_lock.acquire(blocking=False):
            logger.debug("Save already in progress, skipping")
            return None
        try:
            return self._write_snapshot()
        finally:
            self._save_lock.release()

    def _write_snapshot(self) -> bool:
        with self._lock.read():
            snapshot = {key: entry.to_dict() for key, entry in self._entries.items()}

        try:
            self._atomic_write(snapshot)
        except PersistenceError as e:
            logger.error(f"❌ Failed to save cache: {e}")
            return False

        logger.debug(f"Saved {len(snapshot)} cache entries to {self.cache_path}")
        return True

    def _atomic_write(self, snapshot: Dict[str, Any]) -> None:
        tmp_path = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.cache_path.name}.", suffix=".tmp", dir=str(self.cache_dir)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(snapshot, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.cache_path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write {self.cache_path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as e:
                    logger.warning(f"Could not remove temp file {tmp_path}: {e}")
