"""Tests for cache keys, persistence, atomic saves and import/export."""
import json
import os

import pytest

from chapter_ocr.cache import ocr_cache
from chapter_ocr.cache.ocr_cache import OcrCacheStore, get_cache_key
from chapter_ocr.models.ocr_models import CacheEntry

from conftest import make_result


@pytest.mark.parametrize("url,expected", [
    ("http://host:8080/manga/ch1/0.png?token=abc", "/manga/ch1/0.png"),
    ("https://mirror.example/manga/ch1/0.png", "/manga/ch1/0.png"),
    ("/manga/ch1/0.png?x=1", "/manga/ch1/0.png"),
    ("relative/page.png?q", "relative/page.png"),
    ("plain-key", "plain-key"),
])
def test_cache_key(url, expected):
    assert get_cache_key(url) == expected


def test_same_page_through_different_hosts_shares_key():
    assert get_cache_key("http://a:1/p/1.png") == get_cache_key("https://b:2/p/1.png?v=2")


class TestLoad:
    def test_missing_file_is_empty(self, cache_dir):
        assert len(OcrCacheStore(str(cache_dir))) == 0

    def test_corrupt_file_is_empty(self, cache_dir):
        (cache_dir / "ocr-cache.json").write_text("{not json", encoding="utf-8")
        assert len(OcrCacheStore(str(cache_dir))) == 0

    def test_non_object_file_is_empty(self, cache_dir):
        (cache_dir / "ocr-cache.json").write_text("[1, 2, 3]", encoding="utf-8")
        assert len(OcrCacheStore(str(cache_dir))) == 0

    def test_malformed_entries_skipped(self, cache_dir, cache_snapshot):
        cache_snapshot["/bad"] = {"context": "x", "data": [{"text": "no box"}]}
        (cache_dir / "ocr-cache.json").write_text(json.dumps(cache_snapshot), encoding="utf-8")

        store = OcrCacheStore(str(cache_dir))

        assert len(store) == 2
        assert not store.contains("/bad")

    def test_reads_on_disk_format(self, cache_dir, cache_snapshot):
        (cache_dir / "ocr-cache.json").write_text(json.dumps(cache_snapshot), encoding="utf-8")

        entry = OcrCacheStore(str(cache_dir)).get("/manga/ch1/0.png")

        assert entry.context == "Chapter 1"
        assert entry.data[0].text == "一"
        assert entry.data[0].forced_orientation == "vertical"


class TestPersistence:
    def test_put_survives_restart(self, cache_dir):
        store = OcrCacheStore(str(cache_dir))
        store.put("/p/1.png", CacheEntry(context="ctx", data=[make_result("あ")]))

        reloaded = OcrCacheStore(str(cache_dir))

        assert reloaded.get("/p/1.png").data[0].text == "あ"

    def test_put_without_persist_does_not_write(self, cache_dir):
        store = OcrCacheStore(str(cache_dir))
        store.put("/p/1.png", CacheEntry(context="ctx"), persist=False)

        assert store.contains("/p/1.png")
        assert not (cache_dir / "ocr-cache.json").exists()

    def test_file_uses_camel_case_keys(self, cache_dir):
        store = OcrCacheStore(str(cache_dir))
        store.put("/p/1.png", CacheEntry(context="ctx", data=[make_result("あ")]))

        on_disk = json.loads((cache_dir / "ocr-cache.json").read_text(encoding="utf-8"))

        result = on_disk["/p/1.png"]["data"][0]
        assert set(result) == {"text", "tightBoundingBox", "isMerged", "forcedOrientation"}

    def test_clear_persists_empty_map(self, cache_dir):
        store = OcrCacheStore(str(cache_dir))
        store.put("/p/1.png", CacheEntry(context="ctx"))

        store.clear()

        assert len(store) == 0
        assert json.loads((cache_dir / "ocr-cache.json").read_text(encoding="utf-8")) == {}

    def test_failed_save_keeps_previous_file(self, cache_dir, monkeypatch):
        store = OcrCacheStore(str(cache_dir))
        store.put("/p/1.png", CacheEntry(context="first"))
        before = (cache_dir / "ocr-cache.json").read_text(encoding="utf-8")

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(ocr_cache.os, "replace", failing_replace)
        store.put("/p/2.png", CacheEntry(context="second"), persist=False)

        assert store.save() is False
        assert (cache_dir / "ocr-cache.json").read_text(encoding="utf-8") == before
        assert os.listdir(cache_dir) == ["ocr-cache.json"]

    def test_try_save_skips_while_saving(self, cache_dir):
        store = OcrCacheStore(str(cache_dir))
        store.put("/p/1.png", CacheEntry(context="ctx"), persist=False)

        store._save_lock.acquire()
        try:
            assert store.try_save() is None
        finally:
            store._save_lock.release()

        assert store.try_save() is True
        assert (cache_dir / "ocr-cache.json").exists()


class TestImportExport:
    def test_export_whole_map(self, cache_dir, cache_snapshot):
        store = OcrCacheStore(str(cache_dir))
        store.import_entries(cache_snapshot)

        assert store.export() == cache_snapshot

    def test_export_by_context(self, cache_dir, cache_snapshot):
        store = OcrCacheStore(str(cache_dir))
        store.import_entries(cache_snapshot)
        store.put("/other.png", CacheEntry(context="Other"))

        assert set(store.export("Other")) == {"/other.png"}
        assert set(store.export("Chapter 1")) == set(cache_snapshot)

    def test_import_keeps_existing_entries(self, cache_dir, cache_snapshot):
        store = OcrCacheStore(str(cache_dir))
        store.put("/manga/ch1/0.png", CacheEntry(context="mine"))

        added = store.import_entries(cache_snapshot)

        assert added == 1
        assert store.get("/manga/ch1/0.png").context == "mine"
        assert store.get("/manga/ch1/1.png").context == "Chapter 1"

    def test_import_saves_only_when_added(self, cache_dir, cache_snapshot):
        store = OcrCacheStore(str(cache_dir))

        assert store.import_entries({}) == 0
        assert not (cache_dir / "ocr-cache.json").exists()

        assert store.import_entries(cache_snapshot) == 2
        assert (cache_dir / "ocr-cache.json").exists()
