"""
Cache key derivation: request identity to on-disk location.

Turns a request path, its query string and the response content type into
a directory and filename under the cache root. The derivation is pure so
the same request always maps to the same file.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Collection, Sequence
from typing import Literal
from urllib.parse import urlsplit

from .exceptions import PathTooLongError, UnsafePathError
from .query_filter import filter_query

logger = logging.getLogger(__name__)

INDEX_ALIAS = "pc__index__pc"
HASH_PREFIX = "pc__hash__"
MAX_FILENAME_BYTES = 255

LongFilenamePolicy = Literal["hash", "reject"]

_EXTENSIONS = {
    "application/json": "json",
    "text/xml": "xml",
    "application/xml": "xml",
}


def join_paths(paths: Sequence[str]) -> str:
    """Join path parts with ``/``, keeping the first part's absoluteness."""
    trimmed = [part.strip("/") for part in paths if part is not None]
    joined = "/".join(part for part in trimmed if part)
    if paths and paths[0] and paths[0].startswith("/"):
        return "/" + joined
    return joined


def alias_filename(filename: str) -> str:
    return filename or INDEX_ALIAS


def guess_file_extension(content_type: str | None) -> str:
    """Map a Content-Type header to ``json``, ``xml`` or ``html``."""
    if not content_type:
        return "html"
    media_type = content_type.split(";", 1)[0].strip().lower()
    return _EXTENSIONS.get(media_type, "html")


def _is_too_long(basename: str) -> bool:
    return len(basename.encode("utf-8")) > MAX_FILENAME_BYTES


def fit_filename(basename: str, extension: str, policy: LongFilenamePolicy = "hash") -> str:
    """
    Return ``basename`` if it fits the filesystem limit, else its short form.

    The short form keeps the extension and a leading ``_`` and replaces the
    rest with ``pc__hash__{sha256}``. Key derivation and invalidation both
    go through here so they agree on the stored name.
    """
    if not _is_too_long(basename):
        return basename
    if policy == "reject":
        raise PathTooLongError(basename, MAX_FILENAME_BYTES)

    digest = hashlib.sha256(basename.encode("utf-8")).hexdigest()
    prefix = "_" if basename.startswith("_") else ""
    return f"{prefix}{HASH_PREFIX}{digest}.{extension}"


def _split_segments(path_info: str) -> list[str]:
    segments = path_info.lstrip("/").split("/")
    for segment in segments:
        if segment in (".", ".."):
            raise UnsafePathError(f"Refusing to cache path with relative segment: {path_info}")
    return segments


def resolve(
    base_path: str,
    path_info: str,
    full_url: str,
    whitelist: Collection[str] | None,
    content_type: str | None = None,
    *,
    long_filename_policy: LongFilenamePolicy = "hash",
) -> tuple[str, str]:
    """
    Compute the cache directory and filename for a request.

    Args:
        base_path: Cache root (already namespaced by locale when needed).
        path_info: Request path, e.g. ``/shop/shoes``.
        full_url: Full request URL including the query string.
        whitelist: Query parameter names that take part in the cache key.
        content_type: Response Content-Type header, used for the extension.
        long_filename_policy: ``hash`` to shorten filenames over 255 bytes,
            ``reject`` to raise :class:`PathTooLongError`.

    Returns:
        Tuple of (directory, filename).
    """
    segments = _split_segments(path_info)
    candidate = alias_filename(segments.pop())
    query = urlsplit(full_url).query
    directory = join_paths([base_path, "/".join(segments)])

    suffix = filter_query(query, whitelist) if query else None
    if suffix:
        extension = "html"
        basename = "_" + suffix.replace("/", "%2F") + ".html"
    else:
        extension = guess_file_extension(content_type)
        basename = f"{candidate}.{extension}"

    fitted = fit_filename(basename, extension, long_filename_policy)
    if fitted != basename:
        logger.warning("Cache filename too long, using %s instead", fitted)

    return directory, fitted


__all__ = [
    "INDEX_ALIAS",
    "MAX_FILENAME_BYTES",
    "LongFilenamePolicy",
    "alias_filename",
    "fit_filename",
    "guess_file_extension",
    "join_paths",
    "resolve",
]
