"""
Cache index bookkeeping.

Every cached artifact gets an index record holding its path, page type and
expiry time. Records are append-only: caching the same page twice creates
two records, and an external sweep reconciles them with the filesystem.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from contextlib import closing
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol

from .models import IndexRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(moment: datetime) -> str:
    # Fixed-width UTC text: string order matches time order.
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


class IndexStore(Protocol):
    """Append-only store for cache index records."""

    def create(self, *, path: str, page_type: str | None, expire_at: datetime) -> IndexRecord:
        ...


class InMemoryIndexStore:
    """Process-local index store, mostly useful for tests and development."""

    def __init__(self) -> None:
        self._records: list[IndexRecord] = []
        self._lock = threading.Lock()

    def create(self, *, path: str, page_type: str | None, expire_at: datetime) -> IndexRecord:
        with self._lock:
            record = IndexRecord(
                id=len(self._records) + 1,
                path=path,
                page_type=page_type,
                expire_at=expire_at,
            )
            self._records.append(record)
        return record

    def all(self) -> list[IndexRecord]:
        with self._lock:
            return list(self._records)


class SqliteIndexStore:
    """
    SQLite-backed index store.

    A new connection is opened per call so the database file can be shared
    between several server processes.
    """

    def __init__(self, db_path: str | Path, *, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        # Schema is created lazily on first connection.
        self._initialized = False
        self._init_lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self._init_db()
        return self._open()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._init_lock:
            if self._initialized:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._open()) as conn, conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cache_index (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        path TEXT NOT NULL,
                        page_type TEXT,
                        expire_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_cache_index_path ON cache_index (path)"
                )
            self._initialized = True

    def create(self, *, path: str, page_type: str | None, expire_at: datetime) -> IndexRecord:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "INSERT INTO cache_index (path, page_type, expire_at) VALUES (?, ?, ?)",
                (path, page_type, _to_iso(expire_at)),
            )
            record_id = cursor.lastrowid
        return IndexRecord(id=record_id, path=path, page_type=page_type, expire_at=expire_at)

    def all(self) -> list[IndexRecord]:
        return self._select("SELECT * FROM cache_index ORDER BY id", ())

    def find(self, path: str) -> list[IndexRecord]:
        return self._select("SELECT * FROM cache_index WHERE path = ? ORDER BY id", (path,))

    def expired(self, now: datetime | None = None) -> list[IndexRecord]:
        """Return records whose expiry lies at or before ``now``."""
        return self._select(
            "SELECT * FROM cache_index WHERE expire_at <= ? ORDER BY id",
            (_to_iso(now or utcnow()),),
        )

    def _select(self, query: str, params: tuple) -> list[IndexRecord]:
        with closing(self._connect()) as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            IndexRecord(
                id=row["id"],
                path=row["path"],
                page_type=row["page_type"],
                expire_at=datetime.fromisoformat(row["expire_at"]),
            )
            for row in rows
        ]


class CacheIndexRecorder:
    """Compute expiry times and append records to an index store."""

    def __init__(self, store: IndexStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.clock = clock

    def record(self, path: str, page_type: str | None, ttl_minutes: int | None) -> IndexRecord:
        expire_at = self.clock() + timedelta(minutes=ttl_minutes or 0)
        record = self.store.create(path=path, page_type=page_type, expire_at=expire_at)
        logger.debug("Indexed %s (page_type=%s, expire_at=%s)", path, page_type, expire_at)
        return record


__all__ = [
    "CacheIndexRecorder",
    "IndexStore",
    "InMemoryIndexStore",
    "SqliteIndexStore",
    "utcnow",
]
