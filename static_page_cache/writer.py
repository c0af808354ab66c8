"""
Artifact writer for cached responses.

Writes are serialized per target file with an advisory file lock so that
several server processes can cache the same page at once. Targets hash into
a fixed number of lock buckets, so the lock directory holds at most that
many files. Content is written to a temporary file next to the target and
renamed over it, so a reader only ever sees a complete artifact.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import threading
from pathlib import Path

from cachetools import LRUCache
from filelock import FileLock

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755
DEFAULT_LOCK_DIR = Path(tempfile.gettempdir()) / "static-page-cache-locks"
DEFAULT_LOCK_BUCKETS = 256


class ArtifactWriter:
    """
    Persist response bodies to the cache tree.

    Lock objects are kept in a bounded LRU cache keyed by lock bucket so
    repeated writes reuse the same :class:`FileLock`. Two targets sharing a
    bucket simply wait for each other.
    """

    def __init__(
        self,
        *,
        file_mode: int = DEFAULT_FILE_MODE,
        dir_mode: int = DEFAULT_DIR_MODE,
        lock_dir: Path | str | None = None,
        lock_timeout: float = 10.0,
        lock_buckets: int = DEFAULT_LOCK_BUCKETS,
    ) -> None:
        self.file_mode = file_mode
        self.dir_mode = dir_mode
        self.lock_dir = Path(lock_dir) if lock_dir else DEFAULT_LOCK_DIR
        self.lock_timeout = lock_timeout
        self.lock_buckets = max(1, lock_buckets)
        self._locks: LRUCache[int, FileLock] = LRUCache(maxsize=self.lock_buckets)
        self._locks_guard = threading.Lock()

    def write(self, directory: str | Path, filename: str, content: bytes) -> Path:
        """
        Write ``content`` to ``directory/filename``.

        Args:
            directory: Target directory, created when missing.
            filename: Target file name inside ``directory``.
            content: Full response body.

        Returns:
            Path of the written artifact.

        Raises:
            OSError: When the directory or file cannot be written.
            filelock.Timeout: When another writer holds the lock too long.
        """
        target_dir = Path(directory)
        target_dir.mkdir(mode=self.dir_mode, parents=True, exist_ok=True)
        target = target_dir / filename

        with self._lock_for(target):
            self._replace(target, content)

        logger.debug("Wrote %d bytes to %s", len(content), target)
        return target

    def _replace(self, target: Path, content: bytes) -> None:
        handle = tempfile.NamedTemporaryFile(
            dir=target.parent,
            prefix=".pc-",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = Path(handle.name)
        try:
            with handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, self.file_mode)
            os.replace(tmp_path, target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def _lock_for(self, target: Path) -> FileLock:
        digest = hashlib.sha1(str(target.resolve()).encode("utf-8")).digest()
        bucket = int.from_bytes(digest[:8], "big") % self.lock_buckets
        with self._locks_guard:
            lock = self._locks.get(bucket)
            if lock is None:
                self.lock_dir.mkdir(parents=True, exist_ok=True)
                lock = FileLock(self.lock_dir / f"{bucket:04x}.lock", timeout=self.lock_timeout)
                self._locks[bucket] = lock
            return lock


__all__ = [
    "ArtifactWriter",
    "DEFAULT_DIR_MODE",
    "DEFAULT_FILE_MODE",
    "DEFAULT_LOCK_BUCKETS",
    "DEFAULT_LOCK_DIR",
]
