from pathlib import Path

import pytest

from mmdb_cli.exceptions import StorageError
from mmdb_cli.storage import cache as cache_module
from mmdb_cli.storage.cache import CacheRoot, CacheStore, resolve_cache_root


def test_configured_root_is_persistent(tmp_path):
    root = resolve_cache_root(tmp_path / "somewhere")

    assert root.path == tmp_path / "somewhere"
    assert root.persistent is True


def test_default_root_lives_in_home(tmp_path, monkeypatch):
    monkeypatch.setattr(cache_module.Path, "home", classmethod(lambda cls: tmp_path))

    root = resolve_cache_root(None)

    assert root.path == tmp_path / ".mmdb"
    assert root.persistent is True


def test_missing_home_falls_back_to_temporary_dir(monkeypatch):
    def no_home(cls):
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(cache_module.Path, "home", classmethod(no_home))

    root = resolve_cache_root(None)

    assert root.persistent is False
    assert root.reason
    assert root.path.is_dir()
    assert root.path.name.startswith("mmdb")
    root.path.rmdir()


def test_completion_marker_lifecycle(cache_store):
    assert cache_store.is_complete("v1") is False

    cache_store.ensure_dir("v1")
    assert cache_store.is_complete("v1") is False

    cache_store.mark_complete("v1")
    cache_store.mark_complete("v1")
    assert cache_store.is_complete("v1") is True
    assert (cache_store.root_dir() / "v1" / ".ok").is_file()


def test_ensure_dir_is_idempotent(cache_store):
    first = cache_store.ensure_dir("v1")
    second = cache_store.ensure_dir("v1")

    assert first == second == cache_store.root_dir() / "v1"
    assert first.is_dir()


def test_ensure_dir_reports_filesystem_errors(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    store = CacheStore(CacheRoot(blocker, persistent=True), ("a.db",))

    with pytest.raises(StorageError):
        store.ensure_dir("v1")


@pytest.mark.parametrize("tag", ["", ".", "..", "latest", "a/b", "..\\x"])
def test_unsafe_tags_are_rejected(cache_store, tag):
    with pytest.raises(StorageError):
        cache_store.tag_dir(tag)


def test_list_releases(cache_store):
    complete = cache_store.ensure_dir("v1")
    for name in cache_store.files:
        (complete / name).write_bytes(b"12345")
    cache_store.mark_complete("v1")
    partial = cache_store.ensure_dir("v2")
    (partial / "a.db").write_bytes(b"1")
    (cache_store.root_dir() / ".latest.1.tmp").mkdir()

    releases = cache_store.list_releases(active_tag="v1")

    assert [r.tag for r in releases] == ["v1", "v2"]
    v1, v2 = releases
    assert v1.complete and v1.active and v1.size_bytes == 10
    assert not v2.complete and not v2.active
    assert v2.missing_files() == ["b.db"]


def test_list_releases_without_root(tmp_path):
    store = CacheStore(CacheRoot(Path(tmp_path / "nope"), persistent=True), ("a",))

    assert store.list_releases() == []
