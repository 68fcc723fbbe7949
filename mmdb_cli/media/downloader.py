"""
Handles the downloading of a release's required files over HTTP into its
cache directory.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import aiofiles
import aiohttp

from mmdb_cli.exceptions import DownloadError
from mmdb_cli.models.config import FeedConfig
from mmdb_cli.models.stats import AcquisitionStats
from mmdb_cli.storage.cache import CacheStore
from mmdb_cli.utils.formatting import format_size
from mmdb_cli.utils.structured_logger import AcquisitionLogger

log = logging.getLogger(__name__)


class ArtifactDownloader:
    """
    Fetches the fixed set of named files for a tag, skipping files that are
    already present, and marks the release complete once all are on disk.

    Every file is streamed into a temporary sibling and renamed into place
    only after the transfer succeeded, so a present file is always whole.
    """

    def __init__(
        self,
        config: FeedConfig,
        cache: CacheStore,
        session: aiohttp.ClientSession,
        stats: AcquisitionStats | None = None,
        events: AcquisitionLogger | None = None,
    ):
        self.config = config
        self.cache = cache
        self.stats = stats if stats is not None else AcquisitionStats()
        self.events = events
        self._session = session

    @staticmethod
    def _temp_path(destination: Path) -> Path:
        return destination.with_name(f".{destination.name}.{os.getpid()}.part")

    async def download(self, tag: str) -> None:
        """
        Makes every required file of `tag` present and writes its marker.

        Returns immediately, without network activity, if the release is
        already complete.

        Raises:
            DownloadError: If any file cannot be fetched or written.
            StorageError: If the directory or marker cannot be managed.
        """
        if await asyncio.to_thread(self.cache.is_complete, tag):
            log.debug(f"Release '{tag}' is already complete, nothing to download")
            return

        directory = await asyncio.to_thread(self.cache.ensure_dir, tag)
        await asyncio.to_thread(self.cache.remove_stale, directory, ".*.part")

        for filename in self.cache.files:
            destination = directory / filename
            if await asyncio.to_thread(os.path.exists, destination):
                log.debug(f"'{filename}' already present for '{tag}', skipping")
                self.stats.record_skip()
                if self.events:
                    self.events.file_skipped(tag, filename)
                continue

            await self.download_file(tag, filename, destination)

        await asyncio.to_thread(self.cache.mark_complete, tag)
        if self.events:
            self.events.release_completed(
                tag, self.stats.files_downloaded, self.stats.files_skipped
            )

    async def download_file(self, tag: str, filename: str, destination: Path) -> int:
        """
        Streams one release asset to `destination` and returns its size.

        Raises:
            DownloadError: Naming the file, on any request, read or write failure.
        """
        url = self.config.download_url(tag, filename)
        temp_path = self._temp_path(destination)
        started = time.monotonic()
        log.info(f"Downloading [cyan]{filename}[/cyan] ({tag})")

        bytes_written = 0
        replaced = False
        try:
            async with self._session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(
                        self.config.chunk_size
                    ):
                        await f.write(chunk)
                        bytes_written += len(chunk)
            await asyncio.to_thread(os.replace, temp_path, destination)
            replaced = True
        except aiohttp.ClientResponseError as e:
            raise DownloadError(
                f"Failed to download {filename}: HTTP {e.status} from {url}",
                tag=tag,
                filename=filename,
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DownloadError(
                f"Failed to download {filename}: {str(e) or type(e).__name__}",
                tag=tag,
                filename=filename,
            ) from e
        except OSError as e:
            raise DownloadError(
                f"Failed to write to file for {filename}: {e}",
                tag=tag,
                filename=filename,
            ) from e
        finally:
            # Runs on cancellation too
            if not replaced:
                self._discard(temp_path)

        duration = time.monotonic() - started
        self.stats.record_download(bytes_written)
        if self.events:
            self.events.file_downloaded(tag, filename, bytes_written, duration)
        log.debug(
            f"Saved '{filename}' ({format_size(bytes_written)}) in {duration:.1f}s"
        )
        return bytes_written

    @staticmethod
    def _discard(temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            log.debug(f"Could not remove partial download '{temp_path}': {e}")
