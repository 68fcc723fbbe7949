"""
Model describing one release of the artifact set as it exists in the cache.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Release:
    """A tagged release directory inside the cache root."""

    tag: str
    directory: Path
    files: tuple[str, ...]
    complete: bool = False
    active: bool = False
    size_bytes: int = 0

    def missing_files(self) -> list[str]:
        return [name for name in self.files if not (self.directory / name).exists()]
