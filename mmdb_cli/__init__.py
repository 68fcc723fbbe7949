"""
mmdb-cli keeps a local cache of the GeoLite2 databases published as GitHub
releases and exposes stable paths to the newest complete release.
"""

import asyncio
from pathlib import Path

__version__ = "0.3.0"


def ensure_latest_db_files(config=None) -> list[Path]:
    """
    Blocking entry point for library consumers.

    Makes sure the latest release is downloaded and active, then returns the
    absolute paths of its database files through the `latest` link.

    Args:
        config: A `FeedConfig`; defaults to the user's configuration file
            (or built-in defaults when there is none).
    """
    from mmdb_cli.core.release_manager import ReleaseManager
    from mmdb_cli.storage.config_manager import ConfigManager, default_config_file

    if config is None:
        config = ConfigManager(default_config_file()).load_config()
    return asyncio.run(ReleaseManager(config).ensure_latest())


__all__ = ["__version__", "ensure_latest_db_files"]
