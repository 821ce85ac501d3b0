"""Tarball archive collaborator for the staging tasks.

:class:`TarArchiver` satisfies :class:`~assembly_archiver.ArchiverProtocol`.
Submitted file sets are expanded immediately so each entry keeps the override
modes and owners that were in force when it was added; the tarball itself is
only written by :meth:`TarArchiver.create_archive`.

Include and exclude patterns are Ant-style globs. They are evaluated with
``pathspec`` after anchoring each pattern at the file set's directory, so
``*.txt`` only matches top-level files while ``**/*.txt`` matches at any
depth.
"""

from __future__ import annotations

import dataclasses as dc
import io
import logging
import tarfile
import time
import typing as typ
from pathlib import Path

import pathspec
from assembly_archiver import UNSET_MODE
from assembly_errors import ArchiverError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from assembly_archiver import FileSetDescriptor, Owner, StreamTransformer

__all__ = ["DEFAULT_EXCLUDES", "TarArchiver"]

LOGGER = logging.getLogger(__name__)

DEFAULT_EXCLUDES: typ.Final[tuple[str, ...]] = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/.cvsignore",
    "**/RCS",
    "**/SCCS",
    "**/vssver.scc",
    "**/.svn",
    "**/.bzr",
    "**/.bzrignore",
    "**/.git",
    "**/.gitignore",
    "**/.gitattributes",
    "**/.gitmodules",
    "**/.hg",
    "**/.hgignore",
    "**/.hgtags",
    "**/.DS_Store",
)

_COMPRESSION_SUFFIXES: typ.Final[dict[str, str]] = {
    ".tar": "w",
    ".gz": "w:gz",
    ".tgz": "w:gz",
    ".bz2": "w:bz2",
    ".xz": "w:xz",
}

DEFAULT_DIRECTORY_MODE: typ.Final[int] = 0o755


@dc.dataclass(frozen=True)
class _Entry:
    name: str
    source: Path | None
    mode: int
    owner: Owner | None
    transformer: StreamTransformer | None = None

    @property
    def is_directory(self) -> bool:
        return self.source is None or self.source.is_dir()


class TarArchiver:
    """Collect file sets and write them into a tarball."""

    def __init__(self) -> None:
        """Start with no entries and no overrides."""
        self.override_directory_mode = UNSET_MODE
        self.override_file_mode = UNSET_MODE
        self.override_directory_owner: Owner | None = None
        self.override_file_owner: Owner | None = None
        self._entries: dict[str, _Entry] = {}

    @property
    def entry_names(self) -> list[str]:
        """Names of the entries collected so far, in insertion order."""
        return list(self._entries)

    def entry(self, name: str) -> _Entry:
        """Return the collected entry called ``name``."""
        return self._entries[name]

    def add_file_set(self, file_set: FileSetDescriptor) -> None:
        """Expand ``file_set`` into archive entries.

        Raises
        ------
        ArchiverError
            Raised when the file set's directory is not a directory.
        """
        directory = Path(file_set.directory)
        if not directory.is_dir():
            message = f"{directory} is not a directory"
            raise ArchiverError(message)

        includes = None
        if file_set.includes is not None:
            includes = _compile(file_set.includes)
        exclude_patterns = list(file_set.excludes)
        if file_set.using_default_excludes:
            exclude_patterns.extend(DEFAULT_EXCLUDES)
        excludes = _compile(exclude_patterns)
        prefix = _as_directory_prefix(file_set.prefix)

        added = 0
        for path in sorted(directory.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(directory).as_posix()
            if includes is not None and not includes.match_file(relative):
                continue
            if excludes.match_file(relative):
                continue
            self._add_parent_directories(f"{prefix}{relative}", directory, prefix)
            self._add(
                _Entry(
                    name=f"{prefix}{relative}",
                    source=path,
                    mode=self.override_file_mode,
                    owner=self.override_file_owner,
                    transformer=file_set.stream_transformer,
                )
            )
            added += 1
        LOGGER.debug("added %d files from %s under %r", added, directory, prefix)

    def _add_parent_directories(self, name: str, root: Path, prefix: str) -> None:
        parts = name.split("/")[:-1]
        for index in range(1, len(parts) + 1):
            parent = "/".join(parts[:index])
            source = None
            if len(parent) >= len(prefix):
                source = root / parent[len(prefix) :]
            self._add(
                _Entry(
                    name=f"{parent}/",
                    source=source,
                    mode=self.override_directory_mode,
                    owner=self.override_directory_owner,
                )
            )

    def _add(self, entry: _Entry) -> None:
        if entry.name in self._entries:
            if not entry.is_directory:
                LOGGER.debug("skipping duplicate archive entry %s", entry.name)
            return
        self._entries[entry.name] = entry

    def create_archive(self, destination: Path) -> Path:
        """Write the collected entries to ``destination``.

        The compression is chosen from the file suffix (``.tar``, ``.tar.gz``
        or ``.tgz``, ``.tar.bz2``, ``.tar.xz``).

        Raises
        ------
        ArchiverError
            Raised when a staged file can no longer be read or transformed.
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        write_mode = _COMPRESSION_SUFFIXES.get(destination.suffix, "w")
        with tarfile.open(destination, write_mode) as tar:
            for entry in self._entries.values():
                info, payload = _tar_member(entry)
                tar.addfile(info, payload)
        return destination


def _compile(patterns: cabc.Iterable[str]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines(
        "gitwildmatch", (_anchored(pattern) for pattern in patterns)
    )


def _anchored(pattern: str) -> str:
    """Translate an Ant-style pattern into an anchored gitwildmatch line."""
    pattern = pattern.replace("\\", "/")
    if pattern.endswith("/"):
        pattern = f"{pattern}**"
    if pattern.startswith("**"):
        return pattern
    return f"/{pattern.lstrip('/')}"


def _as_directory_prefix(prefix: str) -> str:
    prefix = prefix.replace("\\", "/").strip("/")
    return f"{prefix}/" if prefix else ""


def _tar_member(entry: _Entry) -> tuple[tarfile.TarInfo, io.BytesIO | None]:
    info = tarfile.TarInfo(entry.name.rstrip("/"))
    stat = None
    if entry.source is not None:
        try:
            stat = entry.source.stat()
        except OSError as error:
            message = f"cannot read {entry.source}: {error}"
            raise ArchiverError(message) from error
    info.mtime = int(stat.st_mtime) if stat is not None else int(time.time())

    payload = None
    if entry.is_directory:
        info.type = tarfile.DIRTYPE
        default_mode = DEFAULT_DIRECTORY_MODE
    else:
        data = _read_entry(entry)
        info.size = len(data)
        payload = io.BytesIO(data)
        default_mode = 0o644
    if entry.mode != UNSET_MODE:
        info.mode = entry.mode
    elif stat is not None:
        info.mode = stat.st_mode & 0o7777
    else:
        info.mode = default_mode
    _apply_owner(info, entry.owner)
    return info, payload


def _read_entry(entry: _Entry) -> bytes:
    source = typ.cast("Path", entry.source)
    try:
        data = source.read_bytes()
    except OSError as error:
        message = f"cannot read {source}: {error}"
        raise ArchiverError(message) from error
    if entry.transformer is not None:
        data = entry.transformer(entry.name, data)
    return data


def _apply_owner(info: tarfile.TarInfo, owner: Owner | None) -> None:
    if owner is None:
        return
    if owner.user_id is not None:
        info.uid = owner.user_id
    if owner.user_name is not None:
        info.uname = owner.user_name
    if owner.group_id is not None:
        info.gid = owner.group_id
    if owner.group_name is not None:
        info.gname = owner.group_name
