"""
Storage Layer.

This package handles all data persistence: the configuration file, the
per-tag release cache, the active release link and the cache-root lock.
"""

from .activator import Activator, PathResolver
from .cache import CacheRoot, CacheStore, resolve_cache_root
from .config_manager import ConfigManager
from .lock import CacheLock

__all__ = [
    "Activator",
    "CacheLock",
    "CacheRoot",
    "CacheStore",
    "ConfigManager",
    "PathResolver",
    "resolve_cache_root",
]
