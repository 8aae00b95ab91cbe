"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from devsweep.models.project import BuildArtifacts, Project, ProjectType


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    """Point XDG_CONFIG_HOME at a temp directory so no real config is read."""
    config_home = tmp_path / "xdg_config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home / "devsweep" / "config.toml"


@pytest.fixture
def write_file():
    """Create a file (and its parents) holding ``size`` bytes."""

    def _write(path: Path, size: int = 0, content: str | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if content is not None:
            path.write_text(content)
        else:
            path.write_bytes(b"x" * size)
        return path

    return _write


@pytest.fixture
def sample_tree(tmp_path, write_file):
    """A Rust project with 10 bytes of artifacts and a Node project with 20."""
    root = tmp_path / "code"
    write_file(root / "proj" / "Cargo.toml", content='[package]\nname = "app"\nversion = "0.1.0"\n')
    write_file(root / "proj" / "target" / "debug" / "app", 10)
    write_file(root / "proj2" / "package.json", content='{"name": "web"}')
    write_file(root / "proj2" / "node_modules" / "x", 20)
    return root


def make_project(
    name: str = "demo",
    size: int = 100,
    kind: ProjectType = ProjectType.RUST,
    days_old: float = 0,
    root: Path | None = None,
) -> Project:
    root = root or Path("/projects") / name
    return Project(
        kind=kind,
        root=root,
        artifacts=BuildArtifacts(path=root / "target", size=size),
        name=name,
        modified_at=datetime.now(timezone.utc) - timedelta(days=days_old),
    )


@pytest.fixture
def project_factory():
    """Build in-memory Project records without touching the filesystem."""
    return make_project
