"""Collaborator contracts for the archive writers fed by the staging tasks.

The staging tasks never serialise archives themselves. They talk to an object
satisfying :class:`ArchiverProtocol`, which exposes four override slots and an
``add_file_set`` operation receiving a :class:`FileSetDescriptor`.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

__all__ = [
    "UNSET_MODE",
    "ArchiverProtocol",
    "FileSetDescriptor",
    "Owner",
    "StreamTransformer",
]

UNSET_MODE: typ.Final[int] = -1


class StreamTransformer(typ.Protocol):
    """Protocol for per-file content transforms applied while archiving."""

    def __call__(self, name: str, data: bytes) -> bytes:
        """Return the transformed ``data`` for the entry called ``name``."""
        ...


@dc.dataclass(frozen=True)
class Owner:
    """Ownership applied to archive entries; unset fields keep the default."""

    user_name: str | None = None
    user_id: int | None = None
    group_name: str | None = None
    group_id: int | None = None


@dc.dataclass(frozen=True)
class FileSetDescriptor:
    """Describe one directory submitted to an archive collaborator.

    Parameters
    ----------
    directory : Path
        Source directory whose matching contents are archived.
    prefix : str
        Destination directory inside the archive; empty for the root.
    includes : tuple[str, ...] | None
        Include patterns. ``None`` means every file matches.
    excludes : tuple[str, ...]
        Exclude patterns, possibly empty.
    using_default_excludes : bool
        Whether the collaborator applies its built-in exclude list.
    stream_transformer : StreamTransformer | None
        Optional transform applied to every file's content.
    """

    directory: Path
    prefix: str = ""
    includes: tuple[str, ...] | None = None
    excludes: tuple[str, ...] = ()
    using_default_excludes: bool = True
    stream_transformer: StreamTransformer | None = None


class ArchiverProtocol(typ.Protocol):
    """Archive collaborator consumed by the staging tasks.

    The override attributes hold the mode and ownership applied to entries
    added while they are set. ``-1`` and ``None`` mean the archiver default.
    """

    override_directory_mode: int
    override_file_mode: int
    override_directory_owner: Owner | None
    override_file_owner: Owner | None

    def add_file_set(self, file_set: FileSetDescriptor) -> None:
        """Register ``file_set``; may raise :class:`ArchiverError`."""
        ...
