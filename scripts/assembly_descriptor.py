"""Load TOML assembly descriptors into staging configuration records.

A descriptor names the project being assembled and lists its file sets::

    [project]
    group-id = "org.example"
    artifact-id = "demo"
    version = "1.0.0"
    basedir = "."

    [project.properties]
    greeting = "hello"

    [[file-sets]]
    directory = "src/main/config"
    output-directory = "${artifact.artifactId}/conf"
    includes = ["**/*.properties"]
    file-mode = "0644"
    file-owner = "root:root"
    filtered = true
    line-ending = "unix"

Relative ``basedir`` values resolve against the descriptor's directory.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from assembly_errors import StagingConfigurationError
from assembly_model import FileSetDeclaration, OwnerInfo, Project
from tomlkit import parse
from tomlkit.exceptions import TOMLKitError

__all__ = ["AssemblyDescriptor", "load_descriptor"]

_FILE_SET_KEYS: typ.Final[dict[str, str]] = {
    "directory": "directory",
    "output-directory": "output_directory",
    "includes": "includes",
    "excludes": "excludes",
    "use-default-excludes": "use_default_excludes",
    "directory-mode": "directory_mode",
    "file-mode": "file_mode",
    "directory-owner": "directory_owner",
    "file-owner": "file_owner",
    "filtered": "filtered",
    "line-ending": "line_ending",
}


@dc.dataclass(frozen=True)
class AssemblyDescriptor:
    """Project metadata and file sets read from one descriptor."""

    path: Path
    project: Project
    file_sets: tuple[FileSetDeclaration, ...]
    final_name: str | None = None


def load_descriptor(path: Path) -> AssemblyDescriptor:
    """Parse the descriptor at ``path``.

    Raises
    ------
    StagingConfigurationError
        Raised when the file cannot be read or parsed, or when required keys
        are missing or have the wrong type.
    """
    path = Path(path)
    try:
        document = parse(path.read_text(encoding="utf-8")).unwrap()
    except (OSError, TOMLKitError) as error:
        message = f"cannot load assembly descriptor {path}: {error}"
        raise StagingConfigurationError(message) from error

    project_table = _table(document, "project", path)
    project = _load_project(project_table, path)
    raw_file_sets = document.get("file-sets", [])
    if not isinstance(raw_file_sets, list):
        message = f"{path}: 'file-sets' must be an array of tables"
        raise StagingConfigurationError(message)
    file_sets = tuple(
        _load_file_set(entry, path, index) for index, entry in enumerate(raw_file_sets)
    )
    final_name = project_table.get("final-name")
    return AssemblyDescriptor(
        path=path,
        project=project,
        file_sets=file_sets,
        final_name=str(final_name) if final_name is not None else None,
    )


def _table(document: dict[str, typ.Any], key: str, path: Path) -> dict[str, typ.Any]:
    value = document.get(key)
    if not isinstance(value, dict):
        message = f"{path}: expected a [{key}] table"
        raise StagingConfigurationError(message)
    return value


def _load_project(table: dict[str, typ.Any], path: Path) -> Project:
    try:
        group_id = str(table["group-id"])
        artifact_id = str(table["artifact-id"])
        version = str(table["version"])
    except KeyError as error:
        message = f"{path}: [project] must define {error.args[0]!r}"
        raise StagingConfigurationError(message) from error

    basedir = Path(table.get("basedir", "."))
    if not basedir.is_absolute():
        basedir = path.parent / basedir
    build_directory = table.get("build-directory")
    properties = table.get("properties", {})
    if not isinstance(properties, dict):
        message = f"{path}: [project.properties] must be a table"
        raise StagingConfigurationError(message)

    return Project(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        basedir=basedir.absolute(),
        name=table.get("name"),
        build_final_name=table.get("build-final-name"),
        build_directory=Path(build_directory) if build_directory else None,
        properties={str(key): str(value) for key, value in properties.items()},
    )


def _load_file_set(entry: object, path: Path, index: int) -> FileSetDeclaration:
    if not isinstance(entry, dict):
        message = f"{path}: file-sets[{index}] must be a table"
        raise StagingConfigurationError(message)
    unknown = sorted(set(entry) - set(_FILE_SET_KEYS))
    if unknown:
        message = f"{path}: file-sets[{index}] has unknown keys: {', '.join(unknown)}"
        raise StagingConfigurationError(message)

    values: dict[str, typ.Any] = {}
    for key, field in _FILE_SET_KEYS.items():
        if key not in entry:
            continue
        value = entry[key]
        if field in {"includes", "excludes"}:
            value = _string_tuple(value, path, index, key)
        elif field in {"directory_owner", "file_owner"}:
            value = _owner(value, path, index, key)
        elif field in {"use_default_excludes", "filtered"}:
            if not isinstance(value, bool):
                message = f"{path}: file-sets[{index}].{key} must be a boolean"
                raise StagingConfigurationError(message)
        else:
            value = str(value)
        values[field] = value
    return FileSetDeclaration(**values)


def _string_tuple(value: object, path: Path, index: int, key: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        message = f"{path}: file-sets[{index}].{key} must be an array of strings"
        raise StagingConfigurationError(message)
    return tuple(value)


def _owner(value: object, path: Path, index: int, key: str) -> OwnerInfo:
    if isinstance(value, str):
        return OwnerInfo.parse(value)
    if isinstance(value, dict):
        return OwnerInfo(
            user_name=value.get("user"),
            user_id=value.get("uid"),
            group_name=value.get("group"),
            group_id=value.get("gid"),
        )
    message = f"{path}: file-sets[{index}].{key} must be a string or a table"
    raise StagingConfigurationError(message)
