"""
Data models for the page cache.

This module contains the immutable cache settings passed into every cache
operation, the index record schema, the framework-neutral request/response
views, and the request/response schemas of the admin endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class CacheSettings(BaseModel):
    """
    Per-call cache configuration.

    Attributes:
        cache_path: Explicit cache root; overrides the default public path
        locale: Active locale, used to pick the site hostname subfolder
        page_type: Classifier stored in the index (e.g. page, plp, pdp)
        expire_at: Time to live of cached artifacts in minutes
        whitelist: Query parameter names that take part in the cache key
    """

    model_config = ConfigDict(frozen=True)

    cache_path: str | None = None
    locale: str | None = None
    page_type: str | None = None
    expire_at: int | None = None
    whitelist: tuple[str, ...] | None = None

    def with_cache_path(self, path: str | None) -> CacheSettings:
        return self.model_copy(update={"cache_path": path.rstrip("/\\") if path else None})

    def with_locale(self, locale: str | None) -> CacheSettings:
        return self.model_copy(update={"locale": locale})

    def with_page_type(self, page_type: str | None) -> CacheSettings:
        return self.model_copy(update={"page_type": page_type})

    def with_expire_at(self, minutes: int | None) -> CacheSettings:
        return self.model_copy(update={"expire_at": minutes})


class IndexRecord(BaseModel):
    """
    Metadata of one cached artifact.

    Attributes:
        id: Identifier assigned by the index store
        path: Full path of the artifact on disk
        page_type: Classifier supplied by the caller
        expire_at: Absolute expiry time
    """

    id: int | None = None
    path: str
    page_type: str | None = None
    expire_at: datetime


@dataclass(frozen=True, slots=True)
class RequestInfo:
    method: str
    path: str
    url: str


@dataclass(frozen=True, slots=True)
class ResponseInfo:
    status_code: int
    content_type: str | None
    body: bytes


@dataclass(frozen=True, slots=True)
class CacheResult:
    """Outcome of a cache write; ``record`` is None when indexing failed."""

    path: Path
    record: IndexRecord | None


class ForgetRequest(BaseModel):
    """Request model for the forget endpoint."""

    slug: str
    locale: str | None = None


class ClearRequest(BaseModel):
    """
    Request model for the clear endpoint.

    Attributes:
        path: Subdirectory of the cache root to delete; whole root when None
        locale: Locale whose cache tree should be cleared
        preserve: Keep the directory itself and only delete its contents
    """

    path: str | None = None
    locale: str | None = None
    preserve: bool = False


class InvalidationResponse(BaseModel):
    """Response model for the invalidation endpoints."""

    deleted: bool
    target: str


__all__ = [
    "CacheResult",
    "CacheSettings",
    "ClearRequest",
    "ForgetRequest",
    "IndexRecord",
    "InvalidationResponse",
    "RequestInfo",
    "ResponseInfo",
]
