"""Per-ecosystem project detectors.

Each detector answers two questions about a single directory: does it hold
a project of this ecosystem with build output present, and what is the
project called.  Detectors only read files; nothing is executed.
"""

from __future__ import annotations

import configparser
import json
import logging
import re
import tomllib
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from devsweep.errors import NameExtractionError
from devsweep.models.project import BuildArtifacts, Project, ProjectType
from devsweep.utils import ErrorCallback, dir_size

log = logging.getLogger(__name__)


_SETUP_PY_NAME_RE = re.compile(r"""\bname\s*=\s*["']([^"']+)["']""")
_GRADLE_ROOT_NAME_RE = re.compile(r"""rootProject\.name\s*=\s*["']([^"']+)["']""")
_CMAKE_PROJECT_RE = re.compile(r"""^\s*project\s*\(\s*["']?([^\s)"']+)""", re.IGNORECASE | re.MULTILINE)
_SWIFT_NAME_RE = re.compile(r'name:\s*"([^"]+)"')


def _ignore_error(path: str, message: str) -> None:
    pass


def read_text(path: Path) -> str:
    """Read a metadata file, converting I/O problems to NameExtractionError."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise NameExtractionError(f"Error reading {path}: {e}") from e


def read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(read_text(path))
    except (tomllib.TOMLDecodeError, RecursionError) as e:
        raise NameExtractionError(f"Error parsing {path}: {e}") from e


def _table_str(data: dict[str, Any], *keys: str) -> str | None:
    node: Any = data
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node if isinstance(node, str) and node else None


def _largest(candidates: list[Path], on_error: ErrorCallback) -> BuildArtifacts:
    """Pick the biggest of several artifact directories.

    A single candidate is returned unmeasured; the scanner sizes it later.
    Ties go to the earlier candidate.
    """
    if len(candidates) == 1:
        return BuildArtifacts(path=candidates[0])
    measured = [BuildArtifacts(path=c, size=dir_size(c, on_error)) for c in candidates]
    return max(measured, key=lambda a: a.size)


class ProjectDetector(ABC):
    """Base class for ecosystem detectors.

    Subclasses implement :meth:`find_artifacts` (the match predicate) and
    :meth:`extract_name`.  :meth:`detect` combines both and never raises for
    malformed project metadata.
    """

    @property
    @abstractmethod
    def kind(self) -> ProjectType:
        """Ecosystem this detector recognises."""

    @abstractmethod
    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        """Return the artifact directory if ``path`` is a project with build output."""

    @abstractmethod
    def extract_name(self, path: Path) -> str:
        """Read the project name from its metadata.

        Raises:
            NameExtractionError: If the metadata is missing or malformed.
        """

    def detect(self, path: Path, on_error: ErrorCallback | None = None) -> Project | None:
        """Classify ``path`` as a project of this ecosystem, or return None."""
        on_error = on_error or _ignore_error
        artifacts = self.find_artifacts(path, on_error)
        if artifacts is None:
            return None

        try:
            name = self.extract_name(path)
        except NameExtractionError as e:
            log.debug("Falling back to directory name for %s: %s", path, e)
            on_error(str(path), str(e))
            name = path.name or str(path)

        try:
            mtime = artifacts.path.stat().st_mtime
        except OSError as e:
            on_error(str(artifacts.path), f"Cannot stat {artifacts.path}: {e}")
            mtime = 0.0

        return Project(
            kind=self.kind,
            root=path,
            artifacts=artifacts,
            name=name,
            modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
        )


class RustDetector(ProjectDetector):
    """Cargo packages with a ``target/`` directory."""

    kind = ProjectType.RUST

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        target = path / "target"
        if not ((path / "Cargo.toml").is_file() and target.is_dir()):
            return None
        if self._inside_workspace(path):
            log.debug("Skipping workspace member %s", path)
            return None
        return BuildArtifacts(path=target)

    @staticmethod
    def _is_workspace_root(cargo_toml: Path) -> bool:
        try:
            content = cargo_toml.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return False
        return any(line.strip() == "[workspace]" for line in content.splitlines())

    def _inside_workspace(self, path: Path) -> bool:
        """Members share the workspace root's target/ and are reported there."""
        for ancestor in path.parents:
            manifest = ancestor / "Cargo.toml"
            if manifest.is_file() and self._is_workspace_root(manifest):
                return True
        return False

    def extract_name(self, path: Path) -> str:
        manifest = path / "Cargo.toml"
        name = _table_str(read_toml(manifest), "package", "name")
        if name is None:
            raise NameExtractionError(f"No [package] name in {manifest}")
        return name


class NodeDetector(ProjectDetector):
    """npm/yarn/pnpm packages with installed ``node_modules/``."""

    kind = ProjectType.NODE

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        node_modules = path / "node_modules"
        if (path / "package.json").is_file() and node_modules.is_dir():
            return BuildArtifacts(path=node_modules)
        return None

    def extract_name(self, path: Path) -> str:
        package_json = path / "package.json"
        try:
            data = json.loads(read_text(package_json))
        except (ValueError, RecursionError) as e:
            raise NameExtractionError(f"Error parsing {package_json}: {e}") from e
        name = data.get("name") if isinstance(data, dict) else None
        if not isinstance(name, str) or not name:
            raise NameExtractionError(f"No name field in {package_json}")
        return name


class PythonDetector(ProjectDetector):
    """Python projects with caches, virtualenvs or build output."""

    kind = ProjectType.PYTHON

    config_files = (
        "requirements.txt",
        "setup.py",
        "pyproject.toml",
        "setup.cfg",
        "Pipfile",
        "pipenv.lock",
        "poetry.lock",
    )
    artifact_dirs = (
        "__pycache__",
        ".pytest_cache",
        "venv",
        ".venv",
        "build",
        "dist",
        ".eggs",
        ".tox",
        ".coverage",
    )

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        if not any((path / f).is_file() for f in self.config_files):
            return None
        candidates = [path / d for d in self.artifact_dirs if (path / d).is_dir()]
        if not candidates:
            return None
        return _largest(candidates, on_error)

    def extract_name(self, path: Path) -> str:
        reasons: list[str] = []
        for source in (self._from_pyproject, self._from_setup_py, self._from_setup_cfg):
            try:
                name = source(path)
            except NameExtractionError as e:
                reasons.append(str(e))
                continue
            if name:
                return name
        raise NameExtractionError("; ".join(reasons) or f"No project name found in {path}")

    @staticmethod
    def _from_pyproject(path: Path) -> str | None:
        pyproject = path / "pyproject.toml"
        if not pyproject.is_file():
            return None
        data = read_toml(pyproject)
        return _table_str(data, "project", "name") or _table_str(data, "tool", "poetry", "name")

    @staticmethod
    def _from_setup_py(path: Path) -> str | None:
        setup_py = path / "setup.py"
        if not setup_py.is_file():
            return None
        match = _SETUP_PY_NAME_RE.search(read_text(setup_py))
        return match.group(1) if match else None

    @staticmethod
    def _from_setup_cfg(path: Path) -> str | None:
        setup_cfg = path / "setup.cfg"
        if not setup_cfg.is_file():
            return None
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read_string(read_text(setup_cfg))
        except configparser.Error as e:
            raise NameExtractionError(f"Error parsing {setup_cfg}: {e}") from e
        return parser.get("metadata", "name", fallback=None)


class GoDetector(ProjectDetector):
    """Go modules with a vendored ``vendor/`` directory."""

    kind = ProjectType.GO

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        vendor = path / "vendor"
        if (path / "go.mod").is_file() and vendor.is_dir():
            return BuildArtifacts(path=vendor)
        return None

    def extract_name(self, path: Path) -> str:
        go_mod = path / "go.mod"
        for line in read_text(go_mod).splitlines():
            line = line.strip()
            if line.startswith("module "):
                module_path = line.removeprefix("module ").strip().strip('"')
                if module_path:
                    return module_path.rstrip("/").rsplit("/", 1)[-1]
        raise NameExtractionError(f"No module directive in {go_mod}")


class JavaKotlinDetector(ProjectDetector):
    """Maven (``target/``) and Gradle (``build/``) projects."""

    kind = ProjectType.JAVA_KOTLIN

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        if self._is_maven(path):
            return BuildArtifacts(path=path / "target")
        if self._is_gradle(path):
            return BuildArtifacts(path=path / "build")
        return None

    @staticmethod
    def _is_maven(path: Path) -> bool:
        return (path / "pom.xml").is_file() and (path / "target").is_dir()

    @staticmethod
    def _is_gradle(path: Path) -> bool:
        has_build_script = (path / "build.gradle").is_file() or (path / "build.gradle.kts").is_file()
        return has_build_script and (path / "build").is_dir()

    def extract_name(self, path: Path) -> str:
        if self._is_maven(path):
            return self._from_pom(path / "pom.xml")
        return self._from_gradle_settings(path)

    @staticmethod
    def _from_pom(pom: Path) -> str:
        try:
            root = ET.fromstring(read_text(pom))
        except (ET.ParseError, RecursionError) as e:
            raise NameExtractionError(f"Error parsing {pom}: {e}") from e
        # Direct child only: <parent><artifactId> names a different project.
        for child in root:
            if isinstance(child.tag, str) and child.tag.rsplit("}", 1)[-1] == "artifactId":
                if child.text and child.text.strip():
                    return child.text.strip()
        raise NameExtractionError(f"No artifactId in {pom}")

    @staticmethod
    def _from_gradle_settings(path: Path) -> str:
        for settings_name in ("settings.gradle", "settings.gradle.kts"):
            settings = path / settings_name
            if not settings.is_file():
                continue
            match = _GRADLE_ROOT_NAME_RE.search(read_text(settings))
            if match:
                return match.group(1)
        raise NameExtractionError(f"No rootProject.name in Gradle settings under {path}")


class CppDetector(ProjectDetector):
    """CMake or Make projects with a ``build/`` directory."""

    kind = ProjectType.CPP

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        build = path / "build"
        if not build.is_dir():
            return None
        if (path / "CMakeLists.txt").is_file() or (path / "Makefile").is_file():
            return BuildArtifacts(path=build)
        return None

    def extract_name(self, path: Path) -> str:
        cmake = path / "CMakeLists.txt"
        if not cmake.is_file():
            return path.name
        match = _CMAKE_PROJECT_RE.search(read_text(cmake))
        if match is None:
            raise NameExtractionError(f"No project() call in {cmake}")
        return match.group(1)


class SwiftDetector(ProjectDetector):
    """Swift packages with a ``.build/`` directory."""

    kind = ProjectType.SWIFT

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        build = path / ".build"
        if (path / "Package.swift").is_file() and build.is_dir():
            return BuildArtifacts(path=build)
        return None

    def extract_name(self, path: Path) -> str:
        manifest = path / "Package.swift"
        match = _SWIFT_NAME_RE.search(read_text(manifest))
        if match is None:
            raise NameExtractionError(f"No package name in {manifest}")
        return match.group(1)


class DotNetDetector(ProjectDetector):
    """C# projects with ``bin/`` or ``obj/`` output."""

    kind = ProjectType.DOTNET

    @staticmethod
    def _csproj_files(path: Path) -> list[Path]:
        try:
            return sorted(p for p in path.glob("*.csproj") if p.is_file())
        except OSError:
            return []

    def find_artifacts(self, path: Path, on_error: ErrorCallback) -> BuildArtifacts | None:
        candidates = [path / d for d in ("bin", "obj") if (path / d).is_dir()]
        if not candidates or not self._csproj_files(path):
            return None
        return _largest(candidates, on_error)

    def extract_name(self, path: Path) -> str:
        files = self._csproj_files(path)
        if not files:
            raise NameExtractionError(f"No .csproj file in {path}")
        return files[0].stem


# Detection precedence: the first detector that matches a directory wins.
DEFAULT_DETECTORS: tuple[type[ProjectDetector], ...] = (
    RustDetector,
    NodeDetector,
    PythonDetector,
    GoDetector,
    JavaKotlinDetector,
    CppDetector,
    SwiftDetector,
    DotNetDetector,
)
