"""Copy compiled outputs out of artifact directories before deletion."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from devsweep.models.clean_result import PreservedExecutable
from devsweep.models.project import Project, ProjectType

log = logging.getLogger(__name__)

# Build intermediates and libraries that carry the executable bit on some platforms.
_RUST_EXCLUDED_SUFFIXES = frozenset({".d", ".rmeta", ".rlib", ".a", ".so", ".dylib", ".dll", ".pdb"})
_RUST_PROFILES = ("release", "debug")
_PYTHON_NATIVE_SUFFIXES = frozenset({".so", ".pyd"})


def _is_executable(path: Path) -> bool:
    if os.name == "nt":
        return path.suffix.lower() == ".exe"
    return bool(path.stat().st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


def _copy(source: Path, dest_dir: Path) -> PreservedExecutable:
    dest_dir.mkdir(parents=True, exist_ok=True)
    destination = dest_dir / source.name
    shutil.copy2(source, destination)
    log.debug("Preserved %s -> %s", source, destination)
    return PreservedExecutable(source=source, destination=destination)


def preserve_executables(project: Project) -> list[PreservedExecutable]:
    """Copy a project's build outputs to ``<root>/bin`` where a rule exists.

    Rust binaries go to ``bin/release`` and ``bin/debug``.  Python wheels
    from ``dist/`` and native extensions under ``build/`` go to ``bin/``.
    Other ecosystems have nothing to preserve.

    Raises:
        OSError: If reading the artifacts or copying a file fails.
    """
    if project.kind is ProjectType.RUST:
        return _preserve_rust(project)
    if project.kind is ProjectType.PYTHON:
        return _preserve_python(project)
    return []


def _preserve_rust(project: Project) -> list[PreservedExecutable]:
    preserved: list[PreservedExecutable] = []
    for profile in _RUST_PROFILES:
        profile_dir = project.artifacts.path / profile
        if not profile_dir.is_dir():
            continue
        for path in sorted(profile_dir.iterdir()):
            if path.is_symlink() or not path.is_file():
                continue
            if path.suffix in _RUST_EXCLUDED_SUFFIXES:
                continue
            if _is_executable(path):
                preserved.append(_copy(path, project.root / "bin" / profile))
    return preserved


def _preserve_python(project: Project) -> list[PreservedExecutable]:
    bin_dir = project.root / "bin"
    preserved: list[PreservedExecutable] = []

    dist_dir = project.root / "dist"
    if dist_dir.is_dir():
        for wheel in sorted(dist_dir.glob("*.whl")):
            if wheel.is_file():
                preserved.append(_copy(wheel, bin_dir))

    build_dir = project.root / "build"
    if build_dir.is_dir():
        for path in sorted(build_dir.rglob("*")):
            if path.suffix in _PYTHON_NATIVE_SUFFIXES and path.is_file() and not path.is_symlink():
                preserved.append(_copy(path, bin_dir))

    return preserved
