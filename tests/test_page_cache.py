from datetime import timedelta

import pytest

from static_page_cache.exceptions import ConfigurationError
from static_page_cache.index import CacheIndexRecorder
from static_page_cache.models import CacheSettings, RequestInfo, ResponseInfo
from static_page_cache.page_cache import PageCache


def _get(path, query=""):
    url = f"http://example.com{path}" + (f"?{query}" if query else "")
    return RequestInfo(method="GET", path=path, url=url)


def _ok(body=b"<html></html>", content_type="text/html; charset=utf-8"):
    return ResponseInfo(status_code=200, content_type=content_type, body=body)


class _FailingStore:
    def create(self, *, path, page_type, expire_at):
        raise RuntimeError("index unavailable")


@pytest.mark.parametrize(
    ("method", "status", "expected"),
    [
        ("GET", 200, True),
        ("get", 200, True),
        ("GET", 201, False),
        ("GET", 301, False),
        ("GET", 404, False),
        ("GET", 500, False),
        ("POST", 200, False),
        ("HEAD", 200, False),
        ("PUT", 200, False),
    ],
)
def test_should_cache(page_cache, method, status, expected):
    request = RequestInfo(method=method, path="/a", url="http://example.com/a")
    response = ResponseInfo(status_code=status, content_type="text/html", body=b"")
    assert page_cache.should_cache(request, response) is expected


def test_cache_writes_file_and_index_record(
    page_cache, settings, cache_root, index_store, fixed_now
):
    result = page_cache.cache(_get("/a/b/c"), _ok(b"<p>c</p>"), settings)

    assert result.path == cache_root / "a" / "b" / "c.html"
    assert result.path.read_bytes() == b"<p>c</p>"
    assert result.record.path == f"{cache_root}/a/b/c.html"
    assert result.record.page_type == "page"
    assert result.record.expire_at == fixed_now + timedelta(minutes=30)
    assert index_store.all() == [result.record]


def test_cache_json_response(page_cache, settings, cache_root):
    result = page_cache.cache(_get("/a/b"), _ok(b"{}", "application/json"), settings)
    assert result.path == cache_root / "a" / "b.json"


def test_cache_index_page(page_cache, settings, cache_root):
    result = page_cache.cache(_get("/"), _ok(), settings)
    assert result.path == cache_root / "pc__index__pc.html"


def test_cache_whitelisted_query(page_cache, settings, cache_root):
    settings = settings.model_copy(update={"whitelist": ("color",)})
    result = page_cache.cache(_get("/shop/shoes", "color=red&size=10"), _ok(), settings)
    assert result.path == cache_root / "shop" / "_color=red.html"


def test_repeated_cache_targets_same_file(page_cache, settings, index_store):
    first = page_cache.cache(_get("/a/b", "utm=1"), _ok(b"one"), settings)
    second = page_cache.cache(_get("/a/b", "utm=2"), _ok(b"two"), settings)

    assert first.path == second.path
    assert second.path.read_bytes() == b"two"
    # Each write appends its own index record.
    assert len(index_store.all()) == 2


def test_cache_if_needed_skips_other_methods(page_cache, settings, cache_root, index_store):
    request = RequestInfo(method="POST", path="/a", url="http://example.com/a")

    assert page_cache.cache_if_needed(request, _ok(), settings) is None
    assert list(cache_root.iterdir()) == []
    assert index_store.all() == []


def test_missing_cache_path_raises(page_cache):
    with pytest.raises(ConfigurationError):
        page_cache.cache(_get("/a"), _ok(), CacheSettings())


def test_default_cache_path_uses_public_path_and_locale(writer, index_store, tmp_path):
    service = PageCache(
        writer,
        CacheIndexRecorder(index_store),
        public_path=str(tmp_path / "public"),
        sites={"en_US": "example.com", "nl_NL": "example.nl"},
    )

    nl = CacheSettings(locale="nl_NL")
    assert service.get_cache_path(nl) == f"{tmp_path}/public/static/example.nl"
    assert service.get_cache_path(CacheSettings(locale="fr_FR")) == f"{tmp_path}/public/static"
    assert service.get_cache_path(CacheSettings()) == f"{tmp_path}/public/static"

    result = service.cache(_get("/home"), _ok(), nl)
    assert result.path == tmp_path / "public" / "static" / "example.nl" / "home.html"


def test_explicit_cache_path_wins_over_public_path(writer, index_store, tmp_path):
    service = PageCache(writer, CacheIndexRecorder(index_store), public_path=str(tmp_path))
    settings = CacheSettings(locale="en_US").with_cache_path(str(tmp_path / "explicit") + "/")
    assert service.get_cache_path(settings, "a", "b.html") == f"{tmp_path}/explicit/a/b.html"


def test_index_failure_keeps_written_file(writer, settings, cache_root):
    service = PageCache(writer, CacheIndexRecorder(_FailingStore()))

    result = service.cache(_get("/a"), _ok(b"kept"), settings)

    assert result.record is None
    assert (cache_root / "a.html").read_bytes() == b"kept"


def test_write_failure_propagates(page_cache, settings, index_store, monkeypatch):
    def boom(directory, filename, content):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(page_cache.writer, "write", boom)
    with pytest.raises(OSError):
        page_cache.cache(_get("/a"), _ok(), settings)
    assert index_store.all() == []


def test_forget_and_clear_through_service(page_cache, settings, cache_root):
    page_cache.cache(_get("/foo/bar"), _ok(), settings)
    page_cache.cache(_get("/foo/bar"), _ok(b"{}", "application/json"), settings)
    page_cache.cache(_get("/sub/page"), _ok(), settings)

    assert page_cache.forget("foo/bar", settings) is True
    assert page_cache.forget("foo/bar", settings) is False
    assert page_cache.clear(settings, "sub") is True
    assert not (cache_root / "sub").exists()
    assert page_cache.clear(settings) is True
    assert not cache_root.exists()


def test_settings_are_immutable_values():
    base = CacheSettings(page_type="page", expire_at=10)
    derived = base.with_page_type("pdp").with_expire_at(5).with_locale("en_US")

    assert (base.page_type, base.expire_at, base.locale) == ("page", 10, None)
    assert (derived.page_type, derived.expire_at, derived.locale) == ("pdp", 5, "en_US")
