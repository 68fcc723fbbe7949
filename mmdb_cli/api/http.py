"""
Creates the aiohttp session shared by tag resolution and asset downloads.
"""

import logging

import aiohttp

from mmdb_cli import __version__
from mmdb_cli.models.config import FeedConfig

log = logging.getLogger(__name__)

USER_AGENT = f"mmdb-cli/{__version__}"


def create_session(config: FeedConfig) -> aiohttp.ClientSession:
    """
    Creates a ClientSession tuned for a handful of large, sequential transfers.

    The caller owns the session and must close it (`async with` is preferred).
    """
    connector = aiohttp.TCPConnector(
        limit=4,
        limit_per_host=2,
        ttl_dns_cache=300,
        enable_cleanup_closed=True,
    )
    timeout = aiohttp.ClientTimeout(
        total=config.timeout,
        sock_connect=config.connect_timeout,
    )
    log.debug(
        f"Creating HTTP session (timeout={config.timeout}s, "
        f"connect_timeout={config.connect_timeout}s)"
    )
    return aiohttp.ClientSession(
        connector=connector,
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
    )
