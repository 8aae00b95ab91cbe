"""Retention filters and ordering for scan results."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from devsweep.config import RunConfig, SortKey
from devsweep.models.project import Project

log = logging.getLogger(__name__)

# (sort key, whether the default direction is descending)
_SORT_KEYS: dict[SortKey, tuple[Callable[[Project], Any], bool]] = {
    SortKey.SIZE: (lambda p: p.artifacts.size, True),
    SortKey.AGE: (lambda p: p.modified_at, False),
    SortKey.NAME: (lambda p: p.name.casefold(), False),
    SortKey.TYPE: (lambda p: p.kind.label.casefold(), False),
}


def filter_projects(projects: list[Project], config: RunConfig, now: datetime | None = None) -> list[Project]:
    """Drop projects excluded by the retention thresholds or type filter.

    ``keep_size`` ignores projects *smaller* than the threshold and
    ``keep_days`` ignores projects modified within the last N days, so
    both keep the projects *above* their threshold.
    """
    cutoff = None
    if config.keep_days:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=config.keep_days)

    kept: list[Project] = []
    for project in projects:
        if config.keep_size is not None and project.artifacts.size < config.keep_size:
            continue
        if cutoff is not None and project.modified_at > cutoff:
            continue
        if config.project_types is not None and project.kind not in config.project_types:
            continue
        kept.append(project)

    log.debug("Filtering kept %d of %d projects", len(kept), len(projects))
    return kept


def sort_projects(projects: list[Project], key: SortKey | None, reverse: bool = False) -> list[Project]:
    """Return a stably sorted copy.

    Each key has a natural direction (largest first for ``size``, oldest
    first for ``age``, A-Z otherwise).  ``reverse`` flips the direction;
    projects with equal keys keep their input order either way.  Without
    a key the input order is kept and ``reverse`` has no effect.
    """
    if key is None:
        return list(projects)
    key_func, descending = _SORT_KEYS[key]
    return sorted(projects, key=key_func, reverse=descending != reverse)


def apply(projects: list[Project], config: RunConfig, now: datetime | None = None) -> list[Project]:
    """Filter then sort according to the run configuration."""
    return sort_projects(filter_projects(projects, config, now), config.sort, config.reverse)
