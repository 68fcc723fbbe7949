"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, field_validator, model_validator

DEFAULT_REPO_URL = "https://github.com/P3TERX/GeoLite.mmdb"

DEFAULT_FILES = (
    "GeoLite2-ASN.mmdb",
    "GeoLite2-City.mmdb",
    "GeoLite2-Country.mmdb",
)

# Names inside a cache root that can never be used for a release file.
RESERVED_NAMES = {".ok", ".lock", "latest"}


class FeedConfig(BaseModel):
    """A validated configuration model for the release feed and local cache."""

    # Remote feed
    repo_url: str = DEFAULT_REPO_URL
    files: tuple[str, ...] = DEFAULT_FILES

    # Local cache
    cache_dir: str | None = None
    use_lock: bool = True
    lock_timeout: float = 60.0

    # Network
    timeout: float = 300.0
    connect_timeout: float = 15.0
    chunk_size: int = 262144  # 256 KB
    deadline: float | None = None

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("repo_url")
    @classmethod
    def validate_repo_url(cls, v: str) -> str:
        """Ensures the feed URL is absolute and has no trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Repository URL must start with http:// or https://.")
        return v.rstrip("/")

    @field_validator("files")
    @classmethod
    def validate_files(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Ensures the required file set is non-empty, unique and flat."""
        names = tuple(name.strip() for name in v)
        if not names:
            raise ValueError("At least one required file must be configured.")
        if len(set(names)) != len(names):
            raise ValueError("Required file names must be unique.")
        for name in names:
            if not name or "/" in name or "\\" in name or name in ("..", "."):
                raise ValueError(f"Invalid required file name: {name!r}")
            if name in RESERVED_NAMES:
                raise ValueError(f"'{name}' is reserved by the cache layout.")
        return names

    @field_validator("timeout", "connect_timeout", "lock_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be greater than zero.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Keeps the streaming chunk size within sane bounds."""
        if v < 1024 or v > 16 * 1024 * 1024:
            raise ValueError("Chunk size must be between 1 KB and 16 MB.")
        return v

    @model_validator(mode="after")
    def validate_deadline(self) -> "FeedConfig":
        """A deadline, when set, must leave room for at least one connection."""
        if self.deadline is not None and self.deadline < self.connect_timeout:
            raise ValueError(
                "Deadline must be at least as long as the connect timeout."
            )
        return self

    @property
    def latest_url(self) -> str:
        return f"{self.repo_url}/releases/latest"

    def download_url(self, tag: str, filename: str) -> str:
        """Builds the download URL of one release asset."""
        return f"{self.repo_url}/releases/download/{tag}/{filename}"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
