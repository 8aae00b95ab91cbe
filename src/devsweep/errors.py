"""Exception hierarchy."""

from __future__ import annotations

from pathlib import Path


class DevSweepError(Exception):
    """Base class for all devsweep errors."""


class ConfigError(DevSweepError):
    """Raised when the resolved configuration is invalid."""


class ConfigParseError(ConfigError):
    """Raised when a present config file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to parse config file at {path}: {reason}")
        self.path = path


class InvalidSizeFormat(ConfigError):
    """Raised when a human-entered size string cannot be parsed."""

    def __init__(self, value: str, reason: str = "") -> None:
        message = f"Invalid size format: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.value = value


class ScanRootError(DevSweepError):
    """Raised when the scan root does not exist or is not a directory."""


class NameExtractionError(DevSweepError):
    """Raised when a project's metadata does not yield a name."""


class CleanupError(DevSweepError):
    """Base class for per-project deletion failures."""


class DeleteError(CleanupError):
    """Permanent removal of an artifact directory failed."""


class TrashError(CleanupError):
    """Moving an artifact directory to the trash failed."""
