"""Tests for ServerConfig file loading and environment overrides."""
import logging

import pytest

from chapter_ocr.config.config_manager import ServerConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CHAPTER_OCR_CONFIG", "CHAPTER_OCR_PORT", "CHAPTER_OCR_ADD_SPACE_ON_MERGE",
                 "CHAPTER_OCR_CACHE_DIR", "CHAPTER_OCR_MAX_CONCURRENT_PAGES"):
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path):
    config = ServerConfig(cache_dir=str(tmp_path))

    assert config.port == 3033
    assert config.max_concurrent_pages == 6
    assert config.retry_attempts == 3
    assert config.save_every == 5
    assert config.chunk_max_height == 3000
    assert config.add_space_on_merge is False
    assert config.cache_path == tmp_path.resolve() / "ocr-cache.json"
    assert config.detector_timeout == (10.0, 60.0)


def test_yaml_file(tmp_path, caplog):
    path = tmp_path / "server.yaml"
    path.write_text("port: 4000\nadd_space_on_merge: true\nmystery: 1\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        config = ServerConfig(config_path=str(path), cache_dir=str(tmp_path))

    assert config.port == 4000
    assert config.add_space_on_merge is True
    assert "mystery" in caplog.text


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "server.yaml"
    path.write_text("port: 4000\n", encoding="utf-8")
    monkeypatch.setenv("CHAPTER_OCR_CONFIG", str(path))
    monkeypatch.setenv("CHAPTER_OCR_PORT", "5000")
    monkeypatch.setenv("CHAPTER_OCR_ADD_SPACE_ON_MERGE", "yes")

    config = ServerConfig(cache_dir=str(tmp_path))

    assert config.port == 5000
    assert config.add_space_on_merge is True


def test_bad_values_keep_defaults(tmp_path, monkeypatch):
    path = tmp_path / "server.yaml"
    path.write_text("max_concurrent_pages: lots\n", encoding="utf-8")
    monkeypatch.setenv("CHAPTER_OCR_PORT", "not-a-port")

    config = ServerConfig(config_path=str(path), cache_dir=str(tmp_path))

    assert config.max_concurrent_pages == 6
    assert config.port == 3033


def test_malformed_or_missing_file(tmp_path):
    broken = tmp_path / "broken.yaml"
    broken.write_text("port: [unclosed\n", encoding="utf-8")

    assert ServerConfig(config_path=str(broken), cache_dir=str(tmp_path)).port == 3033
    assert ServerConfig(config_path=str(tmp_path / "absent.yaml"), cache_dir=str(tmp_path)).port == 3033
