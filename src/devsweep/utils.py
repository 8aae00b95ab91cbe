"""Shared utility functions."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable

from devsweep.errors import InvalidSizeFormat

log = logging.getLogger(__name__)

ErrorCallback = Callable[[str, str], None]  # (path, message)

# Longest suffixes first so "KIB" wins over "B".
_SIZE_UNITS: tuple[tuple[str, int], ...] = (
    ("TIB", 1024**4),
    ("GIB", 1024**3),
    ("MIB", 1024**2),
    ("KIB", 1024),
    ("TB", 1000**4),
    ("GB", 1000**3),
    ("MB", 1000**2),
    ("KB", 1000),
    ("B", 1),
)
_NUMBER_RE = re.compile(r"^(\d*)(?:\.(\d+))?$")
_MAX_FRACTION_DIGITS = 9


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def expand_tilde(path: str | Path) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(path).expanduser()


def parse_size(text: str) -> int:
    """Parse a human-entered size into a byte count.

    Accepts plain byte counts (``"1500"``), decimal units (``"1.5MB"``,
    powers of 1000) and binary units (``"2GiB"``, powers of 1024).  Units
    are case-insensitive.  Fractional results are truncated.

    Raises:
        InvalidSizeFormat: If the value cannot be parsed.
    """
    raw = text
    text = text.strip().upper()
    if not text:
        raise InvalidSizeFormat(raw, "empty value")
    if text == "0":
        return 0

    multiplier = 1
    for suffix, factor in _SIZE_UNITS:
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
            multiplier = factor
            break

    match = _NUMBER_RE.match(text)
    if match is None or not (match.group(1) or match.group(2)):
        raise InvalidSizeFormat(raw)

    whole = int(match.group(1) or 0)
    fraction = match.group(2)
    if fraction is None:
        return whole * multiplier

    if len(fraction) > _MAX_FRACTION_DIGITS:
        raise InvalidSizeFormat(raw, f"too many decimal places: {fraction}")
    nanos = int(fraction.ljust(_MAX_FRACTION_DIGITS, "0"))
    return whole * multiplier + nanos * multiplier // 10**_MAX_FRACTION_DIGITS


def format_size(size_bytes: int) -> str:
    """Format a byte count with decimal units, e.g. ``1.50 kB``."""
    if size_bytes < 1000:
        return f"{size_bytes} B"

    units = ("kB", "MB", "GB", "TB", "PB")
    value = size_bytes / 1000
    for unit in units[:-1]:
        if round(value, 2) < 1000:
            return f"{value:.2f} {unit}"
        value /= 1000
    return f"{value:.2f} {units[-1]}"


def dir_size(path: Path | str, on_error: ErrorCallback | None = None) -> int:
    """Calculate the total size of all regular files under a directory.

    Symlinks are never followed, so broken links count as zero and shared
    caches reached through links are not double-counted.  Subdirectories
    that live on a different filesystem than ``path`` are not entered.

    Args:
        path: Directory to measure.
        on_error: Called with ``(path, message)`` for every entry that
            cannot be read.  Errors are otherwise skipped.
    """
    try:
        root_dev = os.stat(path, follow_symlinks=False).st_dev
    except OSError as e:
        if on_error:
            on_error(str(path), f"Cannot stat {path}: {e}")
        return 0

    total = 0
    stack: list[Path | str] = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total += entry.stat(follow_symlinks=False).st_size
                        elif entry.is_dir(follow_symlinks=False):
                            if entry.stat(follow_symlinks=False).st_dev == root_dev:
                                stack.append(entry.path)
                            else:
                                log.debug("Not crossing filesystem boundary: %s", entry.path)
                    except OSError as e:
                        if on_error:
                            on_error(entry.path, f"Cannot access {entry.path}: {e}")
        except OSError as e:
            if on_error:
                on_error(str(current), f"Cannot read {current}: {e}")
    return total


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"
