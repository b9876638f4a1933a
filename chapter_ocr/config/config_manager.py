"""
Configuration Manager for the Chapter OCR Server

Resolution order (later wins):
1. Dataclass defaults below
2. Config file (YAML or JSON) given by config_path or CHAPTER_OCR_CONFIG
3. CHAPTER_OCR_<FIELD_NAME> environment variables
"""
import os
import logging
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "CHAPTER_OCR_"


@dataclass
class ServerConfig:
    """Configuration for the OCR server, pipeline and job scheduler."""

    # Path configuration
    config_path: str = ""

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 3033
    log_level: str = "INFO"

    # Cache
    cache_dir: str = ""
    cache_file_name: str = "ocr-cache.json"

    # Line detector (external oracle)
    detector_url: str = "http://127.0.0.1:8001"
    language_hint: str = "ja"
    detector_proxy: str = ""
    detector_connect_timeout: float = 10.0
    detector_read_timeout: float = 60.0

    # Image acquisition
    fetch_timeout: float = 30.0
    chunk_max_height: int = 3000

    # Merge engine
    add_space_on_merge: bool = False

    # Chapter jobs
    max_concurrent_pages: int = 6
    max_chapter_jobs: int = 4
    save_every: int = 5
    retry_attempts: int = 3
    retry_backoff_seconds: float = 1.0

    def __post_init__(self):
        """Load config file and environment overrides, then resolve paths."""
        if not self.config_path:
            self.config_path = os.getenv(f"{ENV_PREFIX}CONFIG", "")

        if self.config_path:
            self.load_config()

        self.apply_env_overrides()

        if not self.cache_dir:
            self.cache_dir = os.getcwd()
        self.cache_dir = str(Path(self.cache_dir).expanduser().resolve())

    def load_config(self):
        """Load configuration from a YAML/JSON file if it exists."""
        if not os.path.exists(self.config_path):
            logger.warning(f"Config file not found: {self.config_path}")
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config from {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {self.config_path}: top level is not a mapping")
            return

        for key, value in data.items():
            if key == "config_path":
                continue
            if hasattr(self, key):
                try:
                    setattr(self, key, _coerce(getattr(self, key), value))
                except (TypeError, ValueError) as e:
                    logger.warning(f"Bad value for {key}={value!r} in {self.config_path}: {e}")
            else:
                logger.warning(f"Unknown config key ignored: {key}")

    def apply_env_overrides(self):
        """Override fields from CHAPTER_OCR_<NAME> environment variables."""
        for f in fields(self):
            if f.name == "config_path":
                continue
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            try:
                setattr(self, f.name, _coerce(getattr(self, f.name), raw))
            except ValueError as e:
                logger.warning(f"Bad value for {ENV_PREFIX}{f.name.upper()}={raw!r}: {e}")

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir) / self.cache_file_name

    @property
    def detector_timeout(self):
        """(connect, read) timeout tuple for requests."""
        return (self.detector_connect_timeout, self.detector_read_timeout)


def _coerce(current: Any, value: Any) -> Any:
    """Convert value to the type of the field's current value."""
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off", ""):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return str(value)


_server_config_instance: Optional[ServerConfig] = None


def get_server_config(config_path: Optional[str] = None) -> ServerConfig:
    """Get or create the process-wide ServerConfig."""
    global _server_config_instance

    if _server_config_instance is None:
        _server_config_instance = ServerConfig(config_path=config_path or "")

    return _server_config_instance
