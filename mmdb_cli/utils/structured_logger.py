"""
Structured logging system for better log analysis and debugging.
Provides JSON-formatted logs with context and metadata.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("mmdb_cli")
        logger.info("file_downloaded",
                    tag="2024.05.01",
                    filename="GeoLite2-City.mmdb",
                    size_mb=45.2)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable console output
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        # Standard Python logger for console
        self._logger = logging.getLogger(name)

        # JSON log file
        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"mmdb_cli_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            if key not in ("level", "timestamp"):
                parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError, ValueError) as e:
            # Fallback to stderr if JSON logging fails
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        """Log debug event."""
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        """Log info event."""
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        """Log warning event."""
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        """Log error event."""
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class AcquisitionLogger:
    """Specialized logger for release acquisition events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def cache_fallback(self, path: Path, reason: str):
        """Log that the cache root is ephemeral."""
        self.logger.warning("cache_fallback", path=str(path), reason=reason)

    def release_resolved(self, tag: str, url: str):
        self.logger.info("release_resolved", tag=tag, url=url)

    def file_skipped(self, tag: str, filename: str):
        self.logger.debug("file_skipped", tag=tag, filename=filename, reason="exists")

    def file_downloaded(
        self, tag: str, filename: str, size_bytes: int, duration_s: float
    ):
        """Log one required file written to the cache."""
        self.logger.info(
            "file_downloaded",
            tag=tag,
            filename=filename,
            size_bytes=size_bytes,
            size_mb=round(size_bytes / (1024 * 1024), 2),
            duration_s=round(duration_s, 2),
        )

    def release_completed(self, tag: str, files_downloaded: int, files_skipped: int):
        self.logger.info(
            "release_completed",
            tag=tag,
            files_downloaded=files_downloaded,
            files_skipped=files_skipped,
        )

    def release_activated(self, tag: str, previous_tag: str | None):
        self.logger.info("release_activated", tag=tag, previous_tag=previous_tag)

    def acquisition_finished(self, summary: dict):
        """Log the counters of a successful run."""
        self.logger.info("acquisition_finished", **summary)

    def acquisition_failed(self, state: str, error: Exception, tag: str | None = None):
        """Log an acquisition that stopped in the given state."""
        self.logger.error(
            "acquisition_failed",
            state=state,
            tag=tag,
            error_type=type(error).__name__,
            error=str(error),
        )


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, AcquisitionLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, acquisition_logger)
    """
    base = StructuredLogger("mmdb_cli", log_dir=log_dir, enable_json=enable_json)
    return base, AcquisitionLogger(base)
