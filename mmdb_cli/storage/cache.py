"""
Owns the on-disk layout of the release cache:

    <root>/<tag>/<file>     one directory per release tag
    <root>/<tag>/.ok        completion marker
    <root>/latest           symlink to the active release
    <root>/.lock            advisory lock file
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from mmdb_cli.exceptions import StorageError
from mmdb_cli.models.release import Release

log = logging.getLogger(__name__)

MARKER_NAME = ".ok"
LATEST_NAME = "latest"
LOCK_NAME = ".lock"
DEFAULT_DIR_NAME = ".mmdb"
CACHE_DIR_ENV = "MMDB_CACHE_DIR"

# Temporary files untouched for this long belong to dead runs.
STALE_AFTER = 3600.0


@dataclass(frozen=True)
class CacheRoot:
    """A resolved cache root and whether it survives the current process."""

    path: Path
    persistent: bool
    reason: str = ""


def _home_dir() -> Path | None:
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return None
    # expanduser() leaves "~" untouched when no home can be determined
    if str(home) in ("", "~"):
        return None
    return home


def resolve_cache_root(configured: str | os.PathLike | None = None) -> CacheRoot:
    """
    Decides where releases are cached.

    An explicitly configured directory wins. Otherwise `~/.mmdb` is used, and
    when no home directory can be determined a fresh temporary directory is
    created instead. The temporary fallback is not persistent: every process
    run will start from an empty cache.
    """
    if configured:
        return CacheRoot(Path(configured).expanduser().absolute(), persistent=True)

    home = _home_dir()
    if home is not None:
        return CacheRoot(home / DEFAULT_DIR_NAME, persistent=True)

    try:
        temp_dir = tempfile.mkdtemp(prefix="mmdb")
    except OSError as e:
        raise StorageError(f"Failed to create a temporary cache directory: {e}") from e
    log.warning(
        f"[yellow]No home directory found; caching in temporary directory "
        f"'{temp_dir}'. Downloads will not persist across runs.[/yellow]"
    )
    return CacheRoot(
        Path(temp_dir), persistent=False, reason="home directory unavailable"
    )


def validate_tag(tag: str) -> str:
    """Rejects tags that cannot safely be used as a directory name."""
    if (
        not tag
        or tag in (".", "..", LATEST_NAME, MARKER_NAME, LOCK_NAME)
        or "/" in tag
        or "\\" in tag
        or "\x00" in tag
    ):
        raise StorageError(f"Refusing to use '{tag}' as a release directory name.")
    return tag


class CacheStore:
    """
    Manages the per-tag release directories and their completion markers.
    """

    def __init__(self, root: CacheRoot, files: tuple[str, ...]):
        """
        Initializes the cache store.

        Args:
            root: The resolved cache root.
            files: The ordered set of file names every release must contain.
        """
        self.root = root
        self.files = tuple(files)

    def root_dir(self) -> Path:
        """Returns the cache root directory (it may not exist yet)."""
        return self.root.path

    def tag_dir(self, tag: str) -> Path:
        return self.root.path / validate_tag(tag)

    def marker_path(self, tag: str) -> Path:
        return self.tag_dir(tag) / MARKER_NAME

    @property
    def latest_path(self) -> Path:
        return self.root.path / LATEST_NAME

    @property
    def lock_path(self) -> Path:
        return self.root.path / LOCK_NAME

    def is_complete(self, tag: str) -> bool:
        """Returns True iff the release's completion marker exists."""
        marker = self.marker_path(tag)
        try:
            marker.stat()
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            raise StorageError(
                f"Cannot inspect completion marker for '{tag}': {e}"
            ) from e
        return True

    def ensure_dir(self, tag: str) -> Path:
        """Creates the release directory (and the cache root) if absent."""
        directory = self.tag_dir(tag)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory '{directory}': {e}") from e
        return directory

    def mark_complete(self, tag: str) -> None:
        """
        Writes the completion marker. Must only be called once every required
        file is present; an existing marker is left as is.
        """
        marker = self.marker_path(tag)
        try:
            marker.touch(exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create .ok file for '{tag}': {e}") from e
        log.debug(f"Marked release '{tag}' as complete")

    def remove_stale(
        self, directory: Path, pattern: str, max_age: float = STALE_AFTER
    ) -> int:
        """
        Deletes leftovers of interrupted runs matching `pattern` that have
        not been touched for `max_age` seconds. Returns how many were removed.
        """
        cutoff = time.time() - max_age
        removed = 0
        try:
            candidates = list(directory.glob(pattern))
        except OSError as e:
            log.debug(f"Cannot scan '{directory}' for leftovers: {e}")
            return 0
        for path in candidates:
            try:
                if os.lstat(path).st_mtime > cutoff:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                log.debug(f"Could not remove leftover '{path}': {e}")
                continue
            removed += 1
            log.debug(f"Removed leftover '{path.name}' from an interrupted run")
        return removed

    def list_releases(self, active_tag: str | None = None) -> list[Release]:
        """
        Enumerates the release directories in the cache, sorted by tag.

        Args:
            active_tag: The tag currently targeted by `latest`, if known.
        """
        root = self.root.path
        if not root.is_dir():
            return []

        releases = []
        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StorageError(f"Cannot list cache directory '{root}': {e}") from e

        for entry in entries:
            if entry.name.startswith(".") or entry.name == LATEST_NAME:
                continue
            if entry.is_symlink() or not entry.is_dir():
                continue
            size = 0
            for name in self.files:
                try:
                    size += (entry / name).stat().st_size
                except OSError:
                    continue
            releases.append(
                Release(
                    tag=entry.name,
                    directory=entry,
                    files=self.files,
                    complete=(entry / MARKER_NAME).exists(),
                    active=entry.name == active_tag,
                    size_bytes=size,
                )
            )
        return releases
