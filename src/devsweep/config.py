"""Configuration layering: built-in defaults, config file, command line.

Precedence rules applied by :func:`merge`:

* scalars: command line if given, else config file, else default
* flags: enabled if the command line *or* the config file enables them
  (a file-enabled flag cannot be switched off from the command line)
* lists: config file entries first, then command line entries
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from devsweep.errors import ConfigError, ConfigParseError
from devsweep.models.project import ProjectType
from devsweep.utils import expand_tilde, parse_size, xdg_config_home

log = logging.getLogger(__name__)

_CONFIG_DIR = "devsweep"
_CONFIG_FILE = "config.toml"

FLAG_NAMES = ("dry_run", "interactive", "keep_executables", "permanent", "json", "verbose", "yes")


class SortKey(Enum):
    """Ordering applied to the project list."""

    SIZE = "size"
    AGE = "age"
    NAME = "name"
    TYPE = "type"

    @classmethod
    def from_key(cls, key: str) -> SortKey:
        try:
            return cls(key.strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ConfigError(f"Unknown sort key {key!r} (expected one of: {valid})") from None


@dataclass(frozen=True)
class RunConfig:
    """Fully resolved configuration for one run.

    ``project_types`` of ``None`` means every ecosystem.  ``threads`` is
    always a positive worker count once resolved by :func:`merge`.
    """

    target: Path = Path(".")
    project_types: frozenset[ProjectType] | None = None
    keep_size: int | None = None
    keep_days: int | None = None
    sort: SortKey | None = None
    reverse: bool = False
    threads: int = 0
    skip: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()
    dry_run: bool = False
    interactive: bool = False
    keep_executables: bool = False
    permanent: bool = False
    json: bool = False
    verbose: bool = False
    yes: bool = False


@dataclass
class PartialConfig:
    """One configuration layer. ``None`` means the layer does not set a value.

    ``keep_size`` stays a raw string (or byte count from TOML) until merging so
    a bad value in an unused layer is not an error.
    """

    target: Path | None = None
    project_types: frozenset[ProjectType] | None = None
    keep_size: str | int | None = None
    keep_days: int | None = None
    sort: SortKey | None = None
    reverse: bool | None = None
    threads: int | None = None
    skip: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)
    dry_run: bool | None = None
    interactive: bool | None = None
    keep_executables: bool | None = None
    permanent: bool | None = None
    json: bool | None = None
    verbose: bool | None = None
    yes: bool | None = None


DEFAULT_CONFIG = RunConfig()


def default_config_path() -> Path:
    """Return the config file location under XDG_CONFIG_HOME."""
    return xdg_config_home() / _CONFIG_DIR / _CONFIG_FILE


def parse_project_types(values: list[str] | tuple[str, ...] | str) -> frozenset[ProjectType]:
    """Turn project type keys into a set. ``"all"`` selects every ecosystem.

    Raises:
        ConfigError: If a key names no known ecosystem.
    """
    if isinstance(values, str):
        values = [values]
    kinds: set[ProjectType] = set()
    for value in values:
        if value.strip().lower() == "all":
            return frozenset(ProjectType)
        try:
            kinds.add(ProjectType.from_key(value))
        except ValueError as e:
            raise ConfigError(str(e)) from None
    return frozenset(kinds)


def resolve_flag(default: bool, file_value: bool | None, cli_value: bool | None) -> bool:
    """Resolve a boolean option across the three layers.

    The result is ``True`` when either the command line or the config file
    enables the flag.  Only when neither layer mentions it does the default
    apply.  A ``False`` in one layer never cancels a ``True`` in the other.
    """
    if cli_value or file_value:
        return True
    if cli_value is None and file_value is None:
        return default
    return False


def _pick(default: Any, file_value: Any, cli_value: Any) -> Any:
    if cli_value is not None:
        return cli_value
    if file_value is not None:
        return file_value
    return default


def _resolve_keep_size(value: str | int | None) -> int | None:
    if value is None or isinstance(value, int):
        return value
    return parse_size(value)


def merge(defaults: RunConfig, file_config: PartialConfig | None, cli: PartialConfig) -> RunConfig:
    """Layer a config file and command line values over the defaults.

    Pure function: the same three inputs always produce an equal result.

    Raises:
        InvalidSizeFormat: If the effective keep-size value is unparseable.
        ConfigError: If a numeric option is out of range.
    """
    file_config = file_config or PartialConfig()

    keep_size = _resolve_keep_size(_pick(defaults.keep_size, file_config.keep_size, cli.keep_size))
    keep_days = _pick(defaults.keep_days, file_config.keep_days, cli.keep_days)
    if keep_days is not None and keep_days < 0:
        raise ConfigError(f"keep_days must not be negative, got {keep_days}")

    threads = _pick(defaults.threads, file_config.threads, cli.threads)
    if threads < 0:
        raise ConfigError(f"threads must not be negative, got {threads}")
    if threads == 0:
        threads = os.cpu_count() or 1

    flags = {
        name: resolve_flag(getattr(defaults, name), getattr(file_config, name), getattr(cli, name))
        for name in FLAG_NAMES
    }

    return RunConfig(
        target=_pick(defaults.target, file_config.target, cli.target),
        project_types=_pick(defaults.project_types, file_config.project_types, cli.project_types),
        keep_size=keep_size,
        keep_days=keep_days,
        sort=_pick(defaults.sort, file_config.sort, cli.sort),
        reverse=resolve_flag(defaults.reverse, file_config.reverse, cli.reverse),
        threads=threads,
        skip=(*defaults.skip, *file_config.skip, *cli.skip),
        ignore=(*defaults.ignore, *file_config.ignore, *cli.ignore),
        **flags,
    )


def _typed(table: dict[str, Any], key: str, expected: type | tuple[type, ...], path: Path) -> Any:
    value = table.get(key)
    if value is None:
        return None
    expected_types = expected if isinstance(expected, tuple) else (expected,)
    # bool is an int subclass; never accept it where a number is expected
    if not isinstance(value, expected_types) or (isinstance(value, bool) and bool not in expected_types):
        raise ConfigParseError(path, f"'{key}' has an invalid type ({type(value).__name__})")
    return value


def _string_list(table: dict[str, Any], key: str, path: Path) -> list[str]:
    value = _typed(table, key, list, path)
    if value is None:
        return []
    if not all(isinstance(item, str) for item in value):
        raise ConfigParseError(path, f"'{key}' must be a list of strings")
    return list(value)


def _section(data: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigParseError(path, f"[{name}] must be a table")
    return section


def read_config_file(path: Path | None = None) -> PartialConfig | None:
    """Read the persisted configuration.

    Returns ``None`` when the file does not exist.

    Raises:
        ConfigParseError: If the file exists but cannot be read or parsed.
    """
    path = path or default_config_path()
    if not path.exists():
        log.debug("No config file at %s, using defaults", path)
        return None

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(path, str(e)) from e
    except OSError as e:
        raise ConfigParseError(path, str(e)) from e

    filtering = _section(data, "filtering", path)
    scanning = _section(data, "scanning", path)
    execution = _section(data, "execution", path)

    try:
        project_type = _typed(data, "project_type", (str, list), path)
        project_types = parse_project_types(project_type) if project_type is not None else None
        sort = _typed(filtering, "sort", str, path)
        sort_key = SortKey.from_key(sort) if sort is not None else None
    except ConfigParseError:
        raise
    except ConfigError as e:
        raise ConfigParseError(path, str(e)) from e

    target = _typed(data, "dir", str, path)

    config = PartialConfig(
        target=expand_tilde(target) if target is not None else None,
        project_types=project_types,
        keep_size=_typed(filtering, "keep_size", (str, int), path),
        keep_days=_typed(filtering, "keep_days", int, path),
        sort=sort_key,
        reverse=_typed(filtering, "reverse", bool, path),
        threads=_typed(scanning, "threads", int, path),
        skip=_string_list(scanning, "skip", path),
        ignore=_string_list(scanning, "ignore", path),
        verbose=_typed(scanning, "verbose", bool, path),
        keep_executables=_typed(execution, "keep_executables", bool, path),
        interactive=_typed(execution, "interactive", bool, path),
        dry_run=_typed(execution, "dry_run", bool, path),
        permanent=_typed(execution, "permanent", bool, path),
    )
    log.debug("Loaded config file %s", path)
    return config


CONFIG_TEMPLATE = """\
# devsweep configuration
# All values shown are their defaults. Uncomment and change as needed.

# Project types to scan: "all" or any of
# rust, node, python, go, java, cpp, swift, dotnet
# project_type = "all"

# Directory to scan when none is given on the command line
# dir = "."

[filtering]
# Ignore projects whose build directory is smaller than this (e.g. "50MB", "1GiB")
# keep_size = "0"

# Ignore projects whose build directory changed within the last N days
# keep_days = 0

# Sort output by: size, age, name, type
# sort = "size"

# Reverse the sort order
# reverse = false

[scanning]
# Worker threads (0 = all CPU cores)
# threads = 0

# Print access errors collected during scanning
# verbose = false

# Directory names to skip while scanning
# skip = []

# Directory names to ignore entirely while scanning
# ignore = []

[execution]
# Copy compiled executables to <project>/bin/ before cleaning
# keep_executables = false

# Pick projects from a numbered list before cleaning
# interactive = false

# Only report what would be cleaned
# dry_run = false

# Delete permanently instead of moving to the trash
# permanent = false
"""


def format_config(config: PartialConfig | None) -> str:
    """Render a config file layer with unset values marked as defaults."""
    config = config or PartialConfig()
    defaults = DEFAULT_CONFIG

    def show(value: Any, default: Any) -> str:
        if value is None:
            return f"{default}  (default)"
        return str(value)

    def show_list(values: list[str]) -> str:
        if not values:
            return "[]  (default)"
        return "[" + ", ".join(f'"{v}"' for v in values) + "]"

    if config.project_types is None or config.project_types == frozenset(ProjectType):
        types = show(None if config.project_types is None else "all", "all")
    else:
        types = ", ".join(sorted(t.value for t in config.project_types))

    lines = [
        f"project_type     = {types}",
        f"dir              = {show(config.target, defaults.target)}",
        "",
        "[filtering]",
        f"keep_size        = {show(config.keep_size, 0)}",
        f"keep_days        = {show(config.keep_days, 0)}",
        f"sort             = {show(config.sort.value if config.sort else None, '(none)')}",
        f"reverse          = {show(config.reverse, defaults.reverse)}",
        "",
        "[scanning]",
        f"threads          = {show(config.threads, '0 (all cores)')}",
        f"verbose          = {show(config.verbose, defaults.verbose)}",
        f"skip             = {show_list(config.skip)}",
        f"ignore           = {show_list(config.ignore)}",
        "",
        "[execution]",
        f"keep_executables = {show(config.keep_executables, defaults.keep_executables)}",
        f"interactive      = {show(config.interactive, defaults.interactive)}",
        f"dry_run          = {show(config.dry_run, defaults.dry_run)}",
        f"permanent        = {show(config.permanent, defaults.permanent)}",
    ]
    return "\n".join(lines)


def write_config_template(path: Path | None = None) -> bool:
    """Write the commented template. Returns False if the file already exists."""
    path = path or default_config_path()
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    return True
