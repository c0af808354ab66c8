"""Exception types raised by the page cache."""

from __future__ import annotations


class CacheError(Exception):
    """Base class for page cache errors."""


class ConfigurationError(CacheError):
    """Raised when the cache directory cannot be determined."""


class PathTooLongError(CacheError):
    """Raised when a derived filename exceeds the filesystem limit."""

    def __init__(self, filename: str, limit: int) -> None:
        super().__init__(
            f"Cache filename is {len(filename.encode('utf-8'))} bytes, limit is {limit}"
        )
        self.filename = filename
        self.limit = limit


class UnsafePathError(CacheError):
    """Raised when a request path would escape the cache directory."""


__all__ = ["CacheError", "ConfigurationError", "PathTooLongError", "UnsafePathError"]
