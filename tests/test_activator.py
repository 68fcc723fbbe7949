import os
import time

import pytest

from mmdb_cli.exceptions import ActivationError
from mmdb_cli.storage.activator import Activator, PathResolver


@pytest.fixture
def activator(cache_store):
    return Activator(cache_store)


def _release(cache_store, tag):
    directory = cache_store.ensure_dir(tag)
    for name in cache_store.files:
        (directory / name).write_text(f"{tag}/{name}")
    cache_store.mark_complete(tag)
    return directory


def test_activate_creates_latest_link(cache_store, activator):
    target = _release(cache_store, "v1")

    latest = activator.activate("v1")

    assert latest == cache_store.root_dir() / "latest"
    assert latest.is_symlink()
    assert latest.resolve() == target.resolve()
    assert activator.current_tag() == "v1"


def test_activate_repoints_to_newer_release(cache_store, activator):
    _release(cache_store, "v1")
    v2 = _release(cache_store, "v2")
    activator.activate("v1")

    activator.activate("v2")

    assert activator.current_tag() == "v2"
    assert cache_store.latest_path.resolve() == v2.resolve()
    # Older releases are kept
    assert (cache_store.root_dir() / "v1" / ".ok").exists()


def test_activate_same_tag_twice_is_a_no_op(cache_store, activator):
    _release(cache_store, "v1")
    activator.activate("v1")
    before = os.lstat(cache_store.latest_path).st_ino

    activator.activate("v1")

    assert os.lstat(cache_store.latest_path).st_ino == before


def test_activate_replaces_stale_temporary_link(cache_store, activator):
    _release(cache_store, "v1")
    stale = cache_store.root_dir() / f".latest.{os.getpid()}.tmp"
    os.symlink(cache_store.root_dir() / "gone", stale)

    activator.activate("v1")

    assert activator.current_tag() == "v1"
    assert not os.path.lexists(stale)


def test_activate_missing_release_fails(cache_store, activator):
    with pytest.raises(ActivationError, match="does not exist"):
        activator.activate("v404")


def test_activate_fails_when_latest_is_a_real_directory(cache_store, activator):
    _release(cache_store, "v1")
    (cache_store.root_dir() / "latest" / "junk").mkdir(parents=True)

    with pytest.raises(ActivationError):
        activator.activate("v1")
    assert not list(cache_store.root_dir().glob(".latest.*.tmp"))


def test_current_tag_without_link(activator):
    assert activator.current_tag() is None


def test_resolve_paths_preserves_declared_order(cache_store, activator):
    _release(cache_store, "v1")
    activator.activate("v1")

    paths = PathResolver(cache_store).resolve_paths()

    latest = cache_store.root_dir() / "latest"
    assert paths == [latest / "a.db", latest / "b.db"]
    assert all(p.is_absolute() and p.is_file() for p in paths)


def test_resolve_paths_without_active_release(cache_store):
    with pytest.raises(ActivationError, match="No active release"):
        PathResolver(cache_store).resolve_paths()


def test_activate_sweeps_temporary_links_of_dead_runs(cache_store, activator):
    _release(cache_store, "v1")
    root = cache_store.root_dir()
    stale = root / ".latest.99999.tmp"
    fresh = root / ".latest.99998.tmp"
    os.symlink(root / "gone", stale)
    os.symlink(root / "gone", fresh)
    old = time.time() - 2 * 3600
    os.utime(stale, (old, old), follow_symlinks=False)

    activator.activate("v1")

    assert not os.path.lexists(stale)
    assert os.path.lexists(fresh)
