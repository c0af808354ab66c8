"""
Configuration loader for the static page cache.

Looks for config.yaml in this order:
1. Environment variable CONFIG_PATH
2. ./config.yaml (local development)
3. Falls back to default config
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .models import CacheSettings

logger = logging.getLogger(__name__)


class Config:
    def __init__(self, config_path: str = None):
        # Determine config path in order of priority
        if config_path:
            self.config_path = Path(config_path)
        elif os.getenv("CONFIG_PATH"):
            self.config_path = Path(os.getenv("CONFIG_PATH"))
        elif Path("./config.yaml").exists():
            self.config_path = Path("./config.yaml")
        else:
            # No config found, will use defaults
            self.config_path = None

        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """
        Load configuration from the YAML file.

        Returns default config if file not found or unreadable.
        """
        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
                    logger.info("Loaded config from: %s", self.config_path)
                    return config_data
            except (OSError, yaml.YAMLError) as e:
                logger.error("Error loading config from %s: %s", self.config_path, e)
        elif self.config_path:
            logger.warning("Config file not found, using defaults. Tried: %s", self.config_path)

        return {
            "server": {"host": "0.0.0.0", "port": 8000},
            "page_cache": {
                "public_path": "./public",
                "cache_path": None,
                "whitelist": None,
                "sites": {},
                "default_locale": None,
                "default_page_type": "page",
                "expire_at_minutes": 60,
                "file_mode": "0644",
                "dir_mode": "0755",
                "lock_dir": None,
                "lock_timeout": 10,
                "lock_buckets": 256,
                "exclude_paths": [],
                "long_filename_policy": "hash",
                "index_path": "./storage/cache_index.sqlite3",
            },
        }

    def _section(self) -> dict[str, Any]:
        return self._config.get("page_cache", {}) or {}

    @property
    def server_host(self) -> str:
        return self._config.get("server", {}).get("host", "0.0.0.0")

    @property
    def server_port(self) -> int:
        return self._config.get("server", {}).get("port", 8000)

    @property
    def public_path(self) -> str | None:
        """Public web root; the default cache root is its ``static/`` folder."""
        return os.getenv("PUBLIC_PATH") or self._section().get("public_path", "./public")

    @property
    def cache_path(self) -> str | None:
        """Explicit cache root overriding the public web root."""
        return os.getenv("CACHE_PATH") or self._section().get("cache_path")

    @property
    def whitelist(self) -> tuple[str, ...] | None:
        """
        Query parameter names allowed in cache keys.

        None disables query-aware caching, so every query string of a path
        maps to the same artifact.
        """
        tags = self._section().get("whitelist")
        if tags is None:
            return None
        return tuple(str(tag) for tag in tags)

    @property
    def sites(self) -> dict[str, str]:
        """Locale to hostname table used for per-site cache subfolders."""
        sites = self._section().get("sites", {})
        return {str(k): str(v) for k, v in sites.items()} if isinstance(sites, dict) else {}

    @property
    def default_locale(self) -> str | None:
        return self._section().get("default_locale")

    @property
    def default_page_type(self) -> str | None:
        return self._section().get("default_page_type", "page")

    @property
    def expire_at_minutes(self) -> int:
        return int(self._section().get("expire_at_minutes", 60))

    @property
    def file_mode(self) -> int:
        """Permissions of written artifacts (octal string or int, default 0644)."""
        return _parse_mode(self._section().get("file_mode", "0644"))

    @property
    def dir_mode(self) -> int:
        return _parse_mode(self._section().get("dir_mode", "0755"))

    @property
    def lock_dir(self) -> str | None:
        return self._section().get("lock_dir")

    @property
    def lock_timeout(self) -> float:
        return float(self._section().get("lock_timeout", 10))

    @property
    def lock_buckets(self) -> int:
        """Number of lock files shared by all cached pages."""
        return int(self._section().get("lock_buckets", 256))

    @property
    def exclude_paths(self) -> tuple[str, ...]:
        """Request paths never cached, on top of the admin and docs routes."""
        paths = self._section().get("exclude_paths") or []
        return tuple(str(path) for path in paths)

    @property
    def long_filename_policy(self) -> str:
        """Either 'hash' (shorten with a digest) or 'reject' (raise)."""
        policy = str(self._section().get("long_filename_policy", "hash")).lower()
        return policy if policy in ("hash", "reject") else "hash"

    @property
    def index_path(self) -> str:
        return self._section().get("index_path", "./storage/cache_index.sqlite3")

    def default_settings(self) -> CacheSettings:
        """Build the cache settings applied when a request sets none."""
        return CacheSettings(
            cache_path=self.cache_path.rstrip("/\\") if self.cache_path else None,
            locale=self.default_locale,
            page_type=self.default_page_type,
            expire_at=self.expire_at_minutes,
            whitelist=self.whitelist,
        )


def _parse_mode(value: Any) -> int:
    if isinstance(value, int):
        return value
    text = str(value).lower()
    if text.startswith("0o"):
        text = text[2:]
    return int(text, 8)


# Global config singleton used across the service
config = Config()
