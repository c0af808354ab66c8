"""Shared service helpers and base classes.

Provides lightweight base classes to give services consistent logging and
shared cache-root helpers without coupling them to HTTP or FastAPI layers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping


class BaseService:
    """Base class that provides a logger for derived services."""

    def __init__(self, logger: logging.Logger | None = None):
        # Use module-qualified name so loggers stay readable when subclassed
        self.logger = logger or logging.getLogger(self.__class__.__module__)


class SiteRootMixin:
    """Resolve per-site cache subfolders from a locale to hostname table."""

    sites: Mapping[str, str]

    def _site_subfolder(self, locale: str | None) -> str:
        """
        Return the hostname subfolder for ``locale``.

        Unknown or missing locales share the unprefixed cache root.
        """
        if not locale:
            return ""
        return self.sites.get(locale, "")
