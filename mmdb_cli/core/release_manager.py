"""
The main orchestrator: resolves the latest release, makes sure it is fully
downloaded, activates it and hands out the consumer-facing file paths.
"""

import asyncio
import contextlib
import logging
from enum import Enum
from pathlib import Path

from mmdb_cli.api.http import create_session
from mmdb_cli.api.tag_resolver import TagResolver
from mmdb_cli.exceptions import AcquisitionTimeoutError, MmdbCliError
from mmdb_cli.media.downloader import ArtifactDownloader
from mmdb_cli.models.config import FeedConfig
from mmdb_cli.models.release import Release
from mmdb_cli.models.stats import AcquisitionStats
from mmdb_cli.storage.activator import Activator, PathResolver
from mmdb_cli.storage.cache import CacheStore, resolve_cache_root
from mmdb_cli.storage.lock import CacheLock
from mmdb_cli.utils.structured_logger import AcquisitionLogger

log = logging.getLogger(__name__)


class AcquisitionState(str, Enum):
    """Where an acquisition currently is, or where it stopped."""

    IDLE = "idle"
    RESOLVING = "resolving"
    CHECKING = "checking"
    DOWNLOADING = "downloading"
    ACTIVATING = "activating"
    READY = "ready"
    FAILED = "failed"


class ReleaseManager:
    """
    Orchestrates one acquisition of the latest release.

    Failures never roll anything back: the previously active release, if any,
    stays active and usable.
    """

    def __init__(
        self,
        config: FeedConfig,
        cache: CacheStore | None = None,
        events: AcquisitionLogger | None = None,
    ):
        """
        Initializes the manager.

        Args:
            config: The validated feed configuration.
            cache: A cache store to use instead of one derived from `config`.
            events: Optional structured event logger.
        """
        self.config = config
        self.events = events
        if cache is None:
            root = resolve_cache_root(config.cache_dir)
            if not root.persistent and events:
                events.cache_fallback(root.path, root.reason)
            cache = CacheStore(root, config.files)
        self.cache = cache
        self.activator = Activator(cache)
        self.path_resolver = PathResolver(cache)
        self.state = AcquisitionState.IDLE
        self.stats = AcquisitionStats()

    def _lock(self):
        if not self.config.use_lock:
            return contextlib.nullcontext()
        return CacheLock(self.cache.lock_path, timeout=self.config.lock_timeout)

    async def ensure_latest(self) -> list[Path]:
        """
        Makes the latest release available locally and returns its file paths
        through the `latest` link, in the configured order.

        Raises:
            ResolutionError, StorageError, DownloadError, ActivationError:
            From the step that failed.
            AcquisitionTimeoutError: If the configured deadline expires.
        """
        if self.config.deadline is None:
            return await self._ensure_latest()

        try:
            return await asyncio.wait_for(self._ensure_latest(), self.config.deadline)
        except asyncio.TimeoutError as e:
            error = AcquisitionTimeoutError(
                f"Acquisition did not finish within {self.config.deadline:.0f}s "
                f"(stopped while {self.state.value})."
            )
            if self.events:
                self.events.acquisition_failed(self.state.value, error, self.stats.tag)
            self.state = AcquisitionState.FAILED
            raise error from e

    async def _ensure_latest(self) -> list[Path]:
        self.stats = AcquisitionStats()
        self.state = AcquisitionState.RESOLVING
        try:
            async with create_session(self.config) as session:
                tag = await TagResolver(self.config, session).resolve()
                self.stats.tag = tag
                log.info(f"Latest release is [cyan]{tag}[/cyan]")
                if self.events:
                    self.events.release_resolved(tag, self.config.latest_url)

                async with self._lock():
                    self.state = AcquisitionState.CHECKING
                    if await asyncio.to_thread(self.cache.is_complete, tag):
                        log.info(f"Release {tag} is already cached")
                        self.stats.was_cached = True
                    else:
                        self.state = AcquisitionState.DOWNLOADING
                        await asyncio.to_thread(self.cache.ensure_dir, tag)
                        downloader = ArtifactDownloader(
                            self.config, self.cache, session, self.stats, self.events
                        )
                        await downloader.download(tag)

                    self.state = AcquisitionState.ACTIVATING
                    previous = self.activator.current_tag()
                    self.activator.activate(tag)
                    self.stats.activated = previous != tag
                    if self.events and self.stats.activated:
                        self.events.release_activated(tag, previous)

            paths = self.path_resolver.resolve_paths()
            self.state = AcquisitionState.READY
            self.stats.finish()
            if self.events:
                self.events.acquisition_finished(self.stats.as_dict())
            return paths
        except MmdbCliError as e:
            if self.events:
                self.events.acquisition_failed(self.state.value, e, self.stats.tag)
            self.state = AcquisitionState.FAILED
            raise
        finally:
            self.stats.finish()

    def active_paths(self) -> list[Path]:
        """Returns the active release's file paths without any network access."""
        return self.path_resolver.resolve_paths()

    def releases(self) -> list[Release]:
        """Lists cached releases, flagging the active one."""
        return self.cache.list_releases(active_tag=self.activator.current_tag())
