"""
Invalidation of cached artifacts.

Both operations work on the filesystem only and report success as a
boolean. They never touch the cache index, so records of removed files
remain until the expiry sweep picks them up.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .path_resolver import INDEX_ALIAS, fit_filename, join_paths

logger = logging.getLogger(__name__)

FORGET_EXTENSIONS = ("html", "json", "xml")


def _is_unsafe(relative: str) -> bool:
    return any(part in (".", "..") for part in relative.split("/"))


def forget(root: str, slug: str) -> bool:
    """
    Remove the cached artifacts for ``slug`` under ``root``.

    Returns True when at least one file existed and was removed.
    """
    slug = slug.strip("/") or INDEX_ALIAS
    if _is_unsafe(slug):
        logger.warning("Refusing to forget unsafe slug %r", slug)
        return False

    parent, _, name = slug.rpartition("/")
    deleted = False
    for extension in FORGET_EXTENSIONS:
        filename = fit_filename(f"{name}.{extension}", extension)
        target = Path(join_paths([root, parent, filename]))
        try:
            target.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Could not delete cached file %s: %s", target, exc)
            continue
        logger.info("Forgot cached file %s", target)
        deleted = True
    return deleted


def clear(root: str, subpath: str | None = None, *, preserve: bool = False) -> bool:
    """
    Recursively delete the cache root or one of its subdirectories.

    Args:
        root: Cache root directory.
        subpath: Directory below ``root`` to delete; the whole root when None.
        preserve: Keep the directory itself and only delete its contents.

    Returns:
        True when the directory existed and was deleted.
    """
    if subpath and _is_unsafe(subpath.strip("/")):
        logger.warning("Refusing to clear unsafe path %r", subpath)
        return False

    target = Path(join_paths([root, subpath or ""]))
    if not target.is_dir():
        return False

    try:
        if preserve:
            for child in target.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        else:
            shutil.rmtree(target)
    except OSError as exc:
        logger.warning("Could not clear cache directory %s: %s", target, exc)
        return False

    logger.info("Cleared cache directory %s", target)
    return True


__all__ = ["FORGET_EXTENSIONS", "clear", "forget"]
