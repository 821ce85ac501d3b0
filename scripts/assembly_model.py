"""Configuration records describing what an assembly should stage."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

__all__ = [
    "ConfigSource",
    "FileSetDeclaration",
    "OwnerInfo",
    "Project",
]


@dc.dataclass(frozen=True)
class OwnerInfo:
    """Symbolic owner descriptor as written in an assembly descriptor."""

    user_name: str | None = None
    user_id: int | None = None
    group_name: str | None = None
    group_id: int | None = None

    @classmethod
    def parse(cls, text: str) -> OwnerInfo:
        """Build an owner from ``user[:group]``; numeric parts become ids.

        Examples
        --------
        >>> OwnerInfo.parse("root:0")
        OwnerInfo(user_name='root', user_id=None, group_name=None, group_id=0)
        """
        user, _, group = text.strip().partition(":")
        user = user.strip()
        group = group.strip()
        return cls(
            user_name=None if not user or user.isdigit() else user,
            user_id=int(user) if user.isdigit() else None,
            group_name=None if not group or group.isdigit() else group,
            group_id=int(group) if group.isdigit() else None,
        )


@dc.dataclass(frozen=True)
class FileSetDeclaration:
    """One ``file-set`` entry of an assembly descriptor.

    Parameters
    ----------
    directory : str | None
        Source directory, relative to the project base directory unless
        absolute. Blank means the project base directory itself.
    output_directory : str | None
        Destination prefix template inside the archive.
    includes, excludes : tuple[str, ...]
        Ant-style patterns evaluated by the archive collaborator.
    use_default_excludes : bool
        Whether the collaborator's built-in exclude list applies.
    directory_mode, file_mode : str | None
        Octal permission text such as ``"0755"``.
    directory_owner, file_owner : OwnerInfo | None
        Ownership applied to the staged entries.
    filtered : bool
        Interpolate ``${...}`` expressions inside staged files.
    line_ending : str | None
        Line ending policy applied to staged files.
    """

    directory: str | None = None
    output_directory: str | None = None
    includes: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    use_default_excludes: bool = True
    directory_mode: str | None = None
    file_mode: str | None = None
    directory_owner: OwnerInfo | None = None
    file_owner: OwnerInfo | None = None
    filtered: bool = False
    line_ending: str | None = None


@dc.dataclass(frozen=True)
class Project:
    """Metadata of the project whose files are being assembled."""

    group_id: str
    artifact_id: str
    version: str
    basedir: Path
    name: str | None = None
    build_final_name: str | None = None
    build_directory: Path | None = None
    properties: typ.Mapping[str, str] = dc.field(default_factory=dict)


@dc.dataclass(frozen=True)
class ConfigSource:
    """Settings shared by every file set staged during one assembly run.

    ``final_name`` defaults to the project's build final name, falling back to
    ``<artifactId>-<version>``.
    """

    project: Project
    final_name: str | None = None
    archive_base_directory: Path | None = None
    properties: typ.Mapping[str, str] = dc.field(default_factory=dict)
    encoding: str = "utf-8"
    escape_string: str | None = "\\"

    def get_final_name(self) -> str:
        """Return the configured final name or derive it from the project."""
        if self.final_name:
            return self.final_name
        if self.project.build_final_name:
            return self.project.build_final_name
        return f"{self.project.artifact_id}-{self.project.version}"
