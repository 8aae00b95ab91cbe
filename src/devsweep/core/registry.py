"""Ordered detector registry."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from devsweep.core.detectors import DEFAULT_DETECTORS, ProjectDetector
from devsweep.models.project import Project, ProjectType
from devsweep.utils import ErrorCallback

log = logging.getLogger(__name__)


class DetectorRegistry:
    """Stores detectors in precedence order.

    Registration order is detection order: :meth:`detect` tries each
    detector top to bottom and stops at the first match, so a directory is
    never classified as more than one ecosystem.
    """

    def __init__(self) -> None:
        self._detectors: dict[ProjectType, ProjectDetector] = {}

    @classmethod
    def default(cls) -> DetectorRegistry:
        """Registry with every built-in ecosystem in standard precedence."""
        registry = cls()
        for detector_cls in DEFAULT_DETECTORS:
            registry.register(detector_cls())
        return registry

    def register(self, detector: ProjectDetector) -> None:
        """Append a detector at the lowest precedence."""
        if detector.kind in self._detectors:
            log.warning("Detector for '%s' already registered, skipping duplicate", detector.kind.value)
            return
        self._detectors[detector.kind] = detector
        log.debug("Registered detector: %s", detector.kind.value)

    def detect(self, path: Path, on_error: ErrorCallback | None = None) -> Project | None:
        """Return the project found by the first matching detector, if any."""
        for detector in self._detectors.values():
            project = detector.detect(path, on_error)
            if project is not None:
                return project
        return None

    def __len__(self) -> int:
        return len(self._detectors)

    def __iter__(self) -> Iterator[ProjectDetector]:
        return iter(self._detectors.values())
