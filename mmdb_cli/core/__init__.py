"""
Core application engine for orchestrating release acquisition.

The `ReleaseManager` resolves the newest release, delegates the transfer of
its files to the `ArtifactDownloader` and repoints the active release link.
"""

from .release_manager import AcquisitionState, ReleaseManager

__all__ = ["AcquisitionState", "ReleaseManager"]
