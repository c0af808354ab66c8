"""
Query string filtering for cache keys.

Only whitelisted query parameters take part in the cache key. The filter
looks at the first two parameters of the query string and ignores the rest,
which keeps the number of cached variants per page bounded.
"""

from __future__ import annotations

from collections.abc import Collection


def _split_pair(pair: str) -> tuple[str, str]:
    key, _, value = pair.partition("=")
    return key, value


def filter_query(raw_query: str, whitelist: Collection[str] | None) -> str | None:
    """
    Reduce a raw query string to its whitelisted ``key=value`` pairs.

    Args:
        raw_query: Query component of the request URL, without the ``?``.
        whitelist: Parameter names allowed to influence the cache key.
            ``None`` disables query-aware caching entirely.

    Returns:
        The whitelisted pairs joined by ``&`` in their original order, or
        None when nothing is whitelisted and the plain path should be used.
    """
    if whitelist is None:
        return None

    if "&" not in raw_query:
        key, value = _split_pair(raw_query)
        if key not in whitelist:
            return None
        return f"{key}={value}"

    # Parameters after the second one never reach the cache key.
    pairs = [_split_pair(pair) for pair in raw_query.split("&")[:2]]
    kept = [f"{key}={value}" for key, value in pairs if key in whitelist]
    if not kept:
        return None
    return "&".join(kept)


__all__ = ["filter_query"]
