"""Page cache service tying key derivation, writing and indexing together."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from . import invalidator
from .exceptions import ConfigurationError
from .index import CacheIndexRecorder
from .models import CacheResult, CacheSettings, RequestInfo, ResponseInfo
from .path_resolver import LongFilenamePolicy, join_paths, resolve
from .service_base import BaseService, SiteRootMixin
from .writer import ArtifactWriter


class PageCache(BaseService, SiteRootMixin):
    """
    Persist GET responses as static files and keep the cache index current.

    The service holds no per-request state: locale, page type, TTL and
    whitelist arrive with each call as a :class:`CacheSettings` value, so a
    single instance can serve concurrent requests.
    """

    def __init__(
        self,
        writer: ArtifactWriter,
        recorder: CacheIndexRecorder,
        *,
        public_path: str | None = None,
        sites: Mapping[str, str] | None = None,
        long_filename_policy: LongFilenamePolicy = "hash",
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger=logger)
        self.writer = writer
        self.recorder = recorder
        self.public_path = public_path
        self.sites = dict(sites or {})
        self.long_filename_policy = long_filename_policy

    def get_cache_path(self, settings: CacheSettings, *paths: str) -> str:
        """
        Return the cache root for ``settings`` joined with ``paths``.

        Raises:
            ConfigurationError: When neither an explicit cache path nor a
                public path is available.
        """
        base = settings.cache_path or self._default_cache_path(settings.locale)
        if not base:
            raise ConfigurationError("Cache path not set.")
        return join_paths([base, *paths])

    def _default_cache_path(self, locale: str | None) -> str | None:
        if not self.public_path:
            return None
        return join_paths([self.public_path, "static", self._site_subfolder(locale)])

    def should_cache(self, request: RequestInfo, response: ResponseInfo) -> bool:
        return request.method.upper() == "GET" and response.status_code == 200

    def cache_if_needed(
        self,
        request: RequestInfo,
        response: ResponseInfo,
        settings: CacheSettings,
    ) -> CacheResult | None:
        if not self.should_cache(request, response):
            return None
        return self.cache(request, response, settings)

    def cache(
        self,
        request: RequestInfo,
        response: ResponseInfo,
        settings: CacheSettings,
    ) -> CacheResult:
        """
        Write the response to its cache file and record it in the index.

        File write errors propagate. A failing index write is logged and
        leaves the written file in place.
        """
        directory, filename = resolve(
            self.get_cache_path(settings),
            request.path,
            request.url,
            settings.whitelist,
            response.content_type,
            long_filename_policy=self.long_filename_policy,
        )
        target = self.writer.write(directory, filename, response.body)
        full_path = join_paths([directory, filename])

        try:
            record = self.recorder.record(full_path, settings.page_type, settings.expire_at)
        except Exception:  # noqa: BLE001 - index store is an independent resource
            self.logger.exception("Cached %s but could not write its index record", full_path)
            record = None

        self.logger.info("Cached %s as %s", request.path, full_path)
        return CacheResult(path=target, record=record)

    def forget(self, slug: str, settings: CacheSettings) -> bool:
        """Remove the cached html/json/xml files of ``slug``."""
        return invalidator.forget(self.get_cache_path(settings), slug)

    def clear(
        self,
        settings: CacheSettings,
        path: str | None = None,
        *,
        preserve: bool = False,
    ) -> bool:
        """Delete the whole cache tree, or the ``path`` subdirectory of it."""
        return invalidator.clear(self.get_cache_path(settings), path, preserve=preserve)


__all__ = ["PageCache"]
