import stat
import threading

import pytest

from static_page_cache import writer as writer_module
from static_page_cache.invalidator import clear
from static_page_cache.writer import ArtifactWriter


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


def test_write_creates_directories_and_file(writer, tmp_path):
    target = writer.write(tmp_path / "static" / "a" / "b", "c.html", b"<p>hi</p>")

    assert target == tmp_path / "static" / "a" / "b" / "c.html"
    assert target.read_bytes() == b"<p>hi</p>"
    assert _mode(target) == 0o644


def test_write_applies_configured_mode(tmp_path):
    legacy = ArtifactWriter(file_mode=0o777, lock_dir=tmp_path / "locks")
    target = legacy.write(tmp_path / "static", "page.html", b"x")
    assert _mode(target) == 0o777


def test_rewrite_replaces_whole_file(writer, tmp_path):
    writer.write(tmp_path, "page.html", b"a much longer first version")
    target = writer.write(tmp_path, "page.html", b"short")

    assert target.read_bytes() == b"short"


def test_no_temporary_files_are_left_behind(writer, tmp_path):
    writer.write(tmp_path / "out", "page.html", b"body")
    assert [p.name for p in (tmp_path / "out").iterdir()] == ["page.html"]


def test_failed_replace_keeps_old_content(writer, tmp_path, monkeypatch):
    target = writer.write(tmp_path / "out", "page.html", b"old")

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(writer_module.os, "replace", boom)
    with pytest.raises(OSError):
        writer.write(tmp_path / "out", "page.html", b"new")

    assert target.read_bytes() == b"old"
    assert [p.name for p in (tmp_path / "out").iterdir()] == ["page.html"]


def test_lock_objects_are_reused_per_path(writer, tmp_path):
    first = writer._lock_for(tmp_path / "page.html")
    second = writer._lock_for(tmp_path / "page.html")

    assert first is second


def test_pages_share_a_bounded_set_of_lock_files(tmp_path):
    lock_dir = tmp_path / "locks"
    bucketed = ArtifactWriter(lock_dir=lock_dir, lock_buckets=8)

    for i in range(50):
        bucketed.write(tmp_path / "static" / f"section-{i}", f"page-{i}.html", b"body")
    clear(str(tmp_path / "static"))

    lock_files = list(lock_dir.iterdir())
    assert 0 < len(lock_files) <= 8
    assert all(p.suffix == ".lock" for p in lock_files)


def test_single_bucket_serializes_every_page(tmp_path):
    single = ArtifactWriter(lock_dir=tmp_path / "locks", lock_buckets=1)
    assert single._lock_for(tmp_path / "a.html") is single._lock_for(tmp_path / "b.html")


def test_concurrent_writers_never_expose_partial_files(tmp_path):
    payloads = [bytes([65 + i]) * 200_000 for i in range(6)]
    writers = [ArtifactWriter(lock_dir=tmp_path / "locks") for _ in payloads]
    target = tmp_path / "static" / "hot.html"
    done = threading.Event()
    observed = []
    errors = []

    def read_loop():
        while not done.is_set():
            try:
                observed.append(target.read_bytes())
            except FileNotFoundError:
                continue

    def write(instance, payload):
        try:
            for _ in range(5):
                instance.write(target.parent, target.name, payload)
        except Exception as exc:  # pragma: no cover - surfaced by assertion below
            errors.append(exc)

    reader = threading.Thread(target=read_loop)
    reader.start()
    threads = [
        threading.Thread(target=write, args=(instance, payload))
        for instance, payload in zip(writers, payloads)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    done.set()
    reader.join()

    assert errors == []
    assert target.read_bytes() in payloads
    assert all(content in payloads for content in observed)
