"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class MmdbCliError(Exception):
    """Base exception for all application-specific errors."""


class ResolutionError(MmdbCliError):
    """Raised when the latest release tag cannot be determined."""


class StorageError(MmdbCliError):
    """Raised when cache directories or completion markers cannot be managed."""


class LockError(StorageError):
    """Raised when the cache-root lock cannot be acquired in time."""


class DownloadError(MmdbCliError):
    """
    Raised when a required file of a release cannot be materialized on disk.
    """

    def __init__(self, message: str, tag: str, filename: str | None = None):
        super().__init__(message)
        self.tag = tag
        self.filename = filename


class ActivationError(MmdbCliError):
    """Raised when the active release reference cannot be read or updated."""


class AcquisitionTimeoutError(MmdbCliError):
    """Raised when an acquisition exceeds its overall deadline."""


class ConfigurationError(MmdbCliError):
    """Raised for issues related to configuration loading or validation."""
