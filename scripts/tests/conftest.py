"""Shared fixtures and recording fakes for the assembly staging tests."""

from __future__ import annotations

import dataclasses as dc
import importlib.util
import sys
import typing as typ
from pathlib import Path

import pytest

if typ.TYPE_CHECKING:
    from types import ModuleType

SCRIPTS_DIR = Path(__file__).resolve().parents[1]
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from assembly_archiver import UNSET_MODE  # noqa: E402
from assembly_errors import ArchiverError  # noqa: E402
from assembly_model import ConfigSource, Project  # noqa: E402


def _load_module_from_scripts(module_name: str, script_filename: str) -> ModuleType:
    """Load ``module_name`` from ``scripts`` while guarding against import issues."""
    script_path = SCRIPTS_DIR / script_filename
    spec = importlib.util.spec_from_file_location(module_name, script_path)
    if spec is None or spec.loader is None:
        msg = f"Failed to load module spec for {module_name!r} from {script_path}"
        raise RuntimeError(msg)

    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture(scope="module")
def run_assembly_module() -> ModuleType:
    """Load ``run_assembly`` as a real module for CLI tests."""
    return _load_module_from_scripts("run_assembly", "run_assembly.py")


@dc.dataclass
class RecordingArchiver:
    """Archive collaborator that records slot writes and submitted file sets.

    ``fail_with`` makes ``add_file_set`` raise :class:`ArchiverError` after
    recording the submission.
    """

    override_directory_mode: int = UNSET_MODE
    override_file_mode: int = UNSET_MODE
    override_directory_owner: object | None = None
    override_file_owner: object | None = None
    fail_with: str | None = None
    file_sets: list[object] = dc.field(default_factory=list)
    writes: list[tuple[str, object]] = dc.field(default_factory=list)
    overrides_at_submit: list[dict[str, object]] = dc.field(default_factory=list)

    def __setattr__(self, name: str, value: object) -> None:
        """Record writes to override slots once the fake is initialised."""
        if name.startswith("override_") and "writes" in self.__dict__:
            self.writes.append((name, value))
        super().__setattr__(name, value)

    def snapshot(self) -> dict[str, object]:
        """Return the current value of every override slot."""
        return {
            "override_directory_mode": self.override_directory_mode,
            "override_file_mode": self.override_file_mode,
            "override_directory_owner": self.override_directory_owner,
            "override_file_owner": self.override_file_owner,
        }

    def add_file_set(self, file_set: object) -> None:
        """Record ``file_set`` and optionally reject it."""
        self.file_sets.append(file_set)
        self.overrides_at_submit.append(self.snapshot())
        if self.fail_with is not None:
            raise ArchiverError(self.fail_with)


@pytest.fixture
def archiver() -> RecordingArchiver:
    """Provide a fresh recording archiver."""
    return RecordingArchiver()


@pytest.fixture
def project(tmp_path: Path) -> Project:
    """Provide a project rooted in a temporary directory."""
    basedir = tmp_path / "project"
    basedir.mkdir()
    return Project(
        group_id="org.example",
        artifact_id="demo",
        version="1.0.0",
        basedir=basedir,
        properties={"greeting": "hello"},
    )


@pytest.fixture
def config_source(project: Project) -> ConfigSource:
    """Provide a config source without an archive base directory."""
    return ConfigSource(project=project)
