"""
Media Transfer Layer.

This package is responsible for moving release assets from the remote feed
into the local cache.
"""

from .downloader import ArtifactDownloader

__all__ = ["ArtifactDownloader"]
