"""
Maintains the `latest` symlink that consumers use to find the active release,
and derives consumer-facing file paths from it.
"""

import logging
import os
from pathlib import Path

from mmdb_cli.exceptions import ActivationError

from .cache import CacheStore

log = logging.getLogger(__name__)


class Activator:
    """
    Repoints `<root>/latest` at a release directory.

    The new link is created under a temporary name and renamed over the old
    one, so readers always see either the previous or the new release.
    """

    def __init__(self, cache: CacheStore):
        self.cache = cache

    def _temp_link_path(self) -> Path:
        return self.cache.root_dir() / f".latest.{os.getpid()}.tmp"

    def current_tag(self) -> str | None:
        """Returns the tag `latest` points at, or None if there is no link."""
        latest = self.cache.latest_path
        if not latest.is_symlink():
            return None
        try:
            target = os.readlink(latest)
        except OSError as e:
            raise ActivationError(f"Cannot read active release link: {e}") from e
        return Path(target).name or None

    def activate(self, tag: str) -> Path:
        """
        Makes `tag` the active release and returns the `latest` link path.

        Raises:
            ActivationError: If the release directory is missing or the link
            cannot be created.
        """
        target = self.cache.tag_dir(tag)
        latest = self.cache.latest_path

        if not target.is_dir():
            raise ActivationError(
                f"Cannot activate '{tag}': directory '{target}' does not exist."
            )

        previous = self.current_tag()
        if previous == tag and latest.resolve() == target.resolve():
            log.debug(f"Release '{tag}' is already active")
            return latest

        self.cache.remove_stale(self.cache.root_dir(), ".latest.*.tmp")
        temp_link = self._temp_link_path()
        try:
            # A crashed earlier run may have left its temporary link behind
            temp_link.unlink(missing_ok=True)
            os.symlink(target, temp_link, target_is_directory=True)
            os.replace(temp_link, latest)
        except OSError as e:
            try:
                temp_link.unlink(missing_ok=True)
            except OSError:
                log.debug(f"Could not remove temporary link {temp_link}")
            raise ActivationError(
                f"Failed to create symlink to the latest tag '{tag}': {e}"
            ) from e

        log.info(
            f"Activated release [cyan]{tag}[/cyan]"
            + (f" (was [dim]{previous}[/dim])" if previous else "")
        )
        return latest


class PathResolver:
    """Builds the ordered, absolute file paths exposed to lookup libraries."""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    def resolve_paths(self) -> list[Path]:
        """
        Returns `<root>/latest/<file>` for every required file, in the
        configured order.

        Raises:
            ActivationError: If no release is active.
        """
        latest = self.cache.latest_path
        if not latest.is_dir():
            raise ActivationError(
                f"No active release found at '{latest}'. Run 'mmdb-cli update' first."
            )
        return [latest / name for name in self.cache.files]
