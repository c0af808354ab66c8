"""
Static page cache package.

Persists successful GET responses of a FastAPI application as static HTML,
JSON and XML files, records them in a cache index, and supports per-page
and per-directory invalidation. The ASGI app lives in ``.main``.
"""
from .exceptions import CacheError, ConfigurationError, PathTooLongError, UnsafePathError
from .models import CacheSettings, IndexRecord, RequestInfo, ResponseInfo
from .page_cache import PageCache

__version__ = "1.0.0"
__all__ = [
    "CacheError",
    "CacheSettings",
    "ConfigurationError",
    "IndexRecord",
    "PageCache",
    "PathTooLongError",
    "RequestInfo",
    "ResponseInfo",
    "UnsafePathError",
]
