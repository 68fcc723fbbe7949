"""
Dataclass for tracking the statistics of a single acquisition run.
"""

import time
from dataclasses import dataclass, field


@dataclass
class AcquisitionStats:
    """Tracks what an acquisition did: which tag, what was fetched or reused."""

    tag: str | None = None
    files_downloaded: int = 0
    files_skipped: int = 0
    bytes_downloaded: int = 0
    was_cached: bool = False
    activated: bool = False
    _started_at: float = field(default=0.0, repr=False)
    _finished_at: float | None = field(default=None, repr=False)

    def __post_init__(self):
        self._started_at = time.monotonic()

    def record_download(self, size_bytes: int) -> None:
        self.files_downloaded += 1
        self.bytes_downloaded += size_bytes

    def record_skip(self) -> None:
        self.files_skipped += 1

    def finish(self) -> None:
        """Freezes the duration of the run; later calls keep the first end time."""
        if self._finished_at is None:
            self._finished_at = time.monotonic()

    @property
    def duration(self) -> float:
        """Elapsed seconds, measured up to `finish()` if it was called."""
        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self._started_at

    def as_dict(self) -> dict:
        return {
            "tag": self.tag,
            "files_downloaded": self.files_downloaded,
            "files_skipped": self.files_skipped,
            "bytes_downloaded": self.bytes_downloaded,
            "was_cached": self.was_cached,
            "activated": self.activated,
            "duration_s": round(self.duration, 2),
        }
