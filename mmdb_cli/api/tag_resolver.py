"""
Resolves the tag of the newest published release from the feed's
"latest release" redirect.
"""

import asyncio
import logging
import posixpath
from urllib.parse import urlsplit

import aiohttp

from mmdb_cli.exceptions import ResolutionError
from mmdb_cli.models.config import FeedConfig

log = logging.getLogger(__name__)


def tag_from_location(location: str) -> str:
    """
    Extracts the final path segment of a redirect target.

    `https://github.com/o/r/releases/tag/v1.2.3` -> `v1.2.3`. Query strings,
    fragments and trailing slashes are ignored; relative targets are accepted.
    """
    path = urlsplit(location.strip()).path.rstrip("/")
    return posixpath.basename(path)


class TagResolver:
    """
    Determines the newest release by probing `<repo>/releases/latest` with a
    HEAD request and reading the `Location` header of the redirect.

    A single attempt is made; failures are surfaced immediately.
    """

    def __init__(self, config: FeedConfig, session: aiohttp.ClientSession):
        self.config = config
        self._session = session

    async def resolve(self) -> str:
        """
        Returns the latest release tag.

        Raises:
            ResolutionError: If the request fails or no usable `Location`
            header is returned.
        """
        url = self.config.latest_url
        log.debug(f"Resolving latest release via HEAD {url}")
        try:
            async with self._session.head(url, allow_redirects=False) as response:
                location = response.headers.get("Location")
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ResolutionError(
                f"Failed to send HEAD request to {url}: {str(e) or type(e).__name__}"
            ) from e

        if not location:
            raise ResolutionError(
                f"Location header is missing from {url} (HTTP {status})."
            )

        tag = tag_from_location(location)
        if not tag or tag in (".", ".."):
            raise ResolutionError(
                f"Could not extract a release tag from Location '{location}'."
            )

        log.debug(f"Latest release tag is '{tag}'")
        return tag
