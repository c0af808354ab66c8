import pathlib
import sys
from datetime import datetime, timezone

import pytest

# Ensure repo root on sys.path for direct module imports when running tests locally.
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from static_page_cache.index import CacheIndexRecorder, InMemoryIndexStore
from static_page_cache.models import CacheSettings
from static_page_cache.page_cache import PageCache
from static_page_cache.writer import ArtifactWriter


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cache_root(tmp_path):
    root = tmp_path / "static"
    root.mkdir()
    return root


@pytest.fixture
def writer(tmp_path):
    return ArtifactWriter(lock_dir=tmp_path / "locks")


@pytest.fixture
def index_store():
    return InMemoryIndexStore()


@pytest.fixture
def page_cache(writer, index_store, fixed_now):
    recorder = CacheIndexRecorder(index_store, clock=lambda: fixed_now)
    return PageCache(writer, recorder)


@pytest.fixture
def settings(cache_root):
    return CacheSettings(cache_path=str(cache_root), page_type="page", expire_at=30)
