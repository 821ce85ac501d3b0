"""Stage a single directory into an archive collaborator.

:class:`DirectoryStagingTask` owns the override protocol: the archiver's four
override slots are captured, the configured values applied for the duration of
one submission and the captured values restored on every exit path.

Example
-------
>>> task = DirectoryStagingTask(Path("src/main/config"))  # doctest: +SKIP
>>> task.output_directory = "conf"  # doctest: +SKIP
>>> task.execute(archiver)  # doctest: +SKIP
"""

from __future__ import annotations

import contextlib
import logging
import typing as typ
from pathlib import Path

from assembly_archiver import UNSET_MODE, FileSetDescriptor
from assembly_errors import (
    ArchiveCreationError,
    ArchiverError,
    StagingConfigurationError,
)
from assembly_format import fix_relative_refs

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from assembly_archiver import ArchiverProtocol, Owner, StreamTransformer

__all__ = ["DirectoryStagingTask"]

LOGGER = logging.getLogger(__name__)

# Restored in this order; every slot is restored before execute() returns.
_OVERRIDE_SLOTS: typ.Final[tuple[str, ...]] = (
    "override_file_owner",
    "override_directory_owner",
    "override_directory_mode",
    "override_file_mode",
)
_PARENT_SEGMENTS: typ.Final[tuple[str, ...]] = ("../", "..\\")


@contextlib.contextmanager
def _applied_overrides(
    archiver: ArchiverProtocol, requested: typ.Mapping[str, object]
) -> cabc.Iterator[None]:
    """Apply ``requested`` override slots and restore the previous values.

    Slots mapped to ``-1`` or ``None`` are left untouched.
    """
    previous = {slot: getattr(archiver, slot) for slot in _OVERRIDE_SLOTS}
    changed: list[str] = []
    try:
        for slot in reversed(_OVERRIDE_SLOTS):
            value = requested.get(slot)
            if value is None or value == UNSET_MODE:
                continue
            setattr(archiver, slot, value)
            changed.append(slot)
        yield
    finally:
        for slot in _OVERRIDE_SLOTS:
            if slot in changed:
                setattr(archiver, slot, previous[slot])


class DirectoryStagingTask:
    """Register one directory's matching files with an archive collaborator.

    Parameters
    ----------
    directory : Path
        Source directory. A directory missing at execution time is skipped.
    transformer : StreamTransformer | None, optional
        Content transform applied to every staged file.

    Attributes
    ----------
    includes, excludes : Sequence[str] | None
        Patterns handed to the archiver after normalisation. ``None`` or an
        empty include list lets every file match.
    output_directory : str | None
        Destination prefix inside the archive.
    use_default_excludes : bool
        Forwarded to the archiver.
    directory_mode, file_mode : int
        Permission overrides; ``-1`` keeps the archiver default.
    directory_owner, file_owner : Owner | None
        Ownership overrides; ``None`` keeps the archiver default.
    """

    def __init__(
        self, directory: Path, transformer: StreamTransformer | None = None
    ) -> None:
        """Prepare a task for ``directory`` with no overrides configured."""
        self.directory = Path(directory)
        self.transformer = transformer
        self.includes: typ.Sequence[str] | None = None
        self.excludes: typ.Sequence[str] | None = None
        self.output_directory: str | None = None
        self.use_default_excludes = True
        self.directory_mode = UNSET_MODE
        self.file_mode = UNSET_MODE
        self.directory_owner: Owner | None = None
        self.file_owner: Owner | None = None

    def execute(self, archiver: ArchiverProtocol) -> None:
        """Stage the directory into ``archiver``.

        Raises
        ------
        StagingConfigurationError
            Raised when the output directory is or starts with ``".."``.
            Nothing on the archiver has been modified at that point.
        ArchiveCreationError
            Raised when the archiver rejects the file set. The override
            slots are restored before the error propagates.
        """
        prefix = self._validated_prefix()
        requested = {
            "override_directory_mode": self.directory_mode,
            "override_file_mode": self.file_mode,
            "override_directory_owner": self.directory_owner,
            "override_file_owner": self.file_owner,
        }
        with _applied_overrides(archiver, requested):
            if not self.directory.exists():
                LOGGER.debug("skipping missing directory %s", self.directory)
                return
            self._submit(archiver, prefix)

    def _validated_prefix(self) -> str:
        prefix = self.output_directory
        if prefix == ".":
            return ""
        if prefix is not None and (
            prefix == ".." or prefix.startswith(_PARENT_SEGMENTS)
        ):
            message = (
                f"Cannot add source directory: {self.directory} to archive-path: "
                f"{prefix}. All paths must be within the archive root directory."
            )
            raise StagingConfigurationError(message)
        return prefix or ""

    def _submit(self, archiver: ArchiverProtocol, prefix: str) -> None:
        includes = None
        if self.includes:
            includes = tuple(_normalise_pattern(pattern) for pattern in self.includes)
        excludes = tuple(_normalise_pattern(pattern) for pattern in self.excludes or ())

        file_set = FileSetDescriptor(
            directory=self.directory,
            prefix=prefix,
            includes=includes,
            excludes=excludes,
            using_default_excludes=self.use_default_excludes,
            stream_transformer=self.transformer,
        )
        try:
            archiver.add_file_set(file_set)
        except ArchiverError as error:
            message = f"Error adding directory to archive: {error}"
            raise ArchiveCreationError(message) from error


def _normalise_pattern(pattern: str) -> str:
    """Resolve relative segments and drop one leading separator."""
    value = fix_relative_refs(pattern)
    if value.startswith(("/", "\\")):
        value = value[1:]
    return value
