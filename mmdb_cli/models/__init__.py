"""
Data Models Layer.

This package contains the Pydantic and dataclass models that define the core
data structures used throughout the application, such as configuration,
cached releases and acquisition statistics.
"""

from .config import DEFAULT_FILES, DEFAULT_REPO_URL, FeedConfig
from .release import Release
from .stats import AcquisitionStats

__all__ = [
    "DEFAULT_FILES",
    "DEFAULT_REPO_URL",
    "AcquisitionStats",
    "FeedConfig",
    "Release",
]
