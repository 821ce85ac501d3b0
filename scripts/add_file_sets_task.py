"""Stage the file sets declared by an assembly descriptor.

:class:`FileSetBatchTask` resolves each declaration's source directory and
destination prefix, converts its symbolic modes and owners, then delegates to
one :class:`~add_directory_task.DirectoryStagingTask` per declaration. The
first failure aborts the remaining declarations.
"""

from __future__ import annotations

import logging
import os
import typing as typ
from pathlib import Path

from add_directory_task import DirectoryStagingTask
from assembly_conversion import mode_to_int, owner_info_to_owner
from assembly_errors import FormattingError, StagingConfigurationError
from assembly_format import (
    get_output_directory,
    project_context,
    warn_for_platform_specifics,
)
from assembly_transform import get_file_set_transformer

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from assembly_archiver import ArchiverProtocol
    from assembly_model import ConfigSource, FileSetDeclaration, Project

__all__ = ["FileSetBatchTask"]

LOGGER = logging.getLogger(__name__)

_SEPARATORS: typ.Final[str] = "/\\"


class FileSetBatchTask:
    """Stage an ordered collection of file set declarations.

    Attributes
    ----------
    project : Project | None
        Primary project. Taken from the config source on first use when unset.
    module_project : Project | None
        Module project exposed to destination templates as ``${module.*}``.
    logger : logging.Logger | None
        Logger receiving diagnostics; defaults to the module logger.
    """

    def __init__(self, *file_sets: FileSetDeclaration) -> None:
        """Store ``file_sets`` in the order they will be staged."""
        self.file_sets: list[FileSetDeclaration] = list(file_sets)
        self.project: Project | None = None
        self.module_project: Project | None = None
        self.logger: logging.Logger | None = None

    @classmethod
    def from_iterable(
        cls, file_sets: cabc.Iterable[FileSetDeclaration]
    ) -> FileSetBatchTask:
        """Build a task from any iterable of declarations."""
        return cls(*file_sets)

    def execute(self, archiver: ArchiverProtocol, config_source: ConfigSource) -> None:
        """Stage every declaration into ``archiver``.

        Raises
        ------
        StagingConfigurationError
            Raised before any declaration is processed when the configured
            archive base directory is missing or is not a directory.
        FormattingError
            Raised when a destination template cannot be interpolated or a
            declaration points at the filesystem root.
        ArchiveCreationError
            Raised when the archiver rejects a file set.
        """
        archive_base_dir = config_source.archive_base_directory
        if archive_base_dir is not None:
            archive_base_dir = Path(archive_base_dir)
            _check_archive_base_directory(archive_base_dir)

        for file_set in self.file_sets:
            self.add_file_set(file_set, archiver, config_source, archive_base_dir)

    def add_file_set(
        self,
        file_set: FileSetDeclaration,
        archiver: ArchiverProtocol,
        config_source: ConfigSource,
        archive_base_dir: Path | None,
    ) -> None:
        """Resolve ``file_set`` and stage it with a directory task."""
        logger = self.logger or LOGGER
        if self.project is None:
            self.project = config_source.project
        basedir = Path(self.project.basedir)

        destination = file_set.output_directory
        if destination is None:
            destination = file_set.directory
        warn_for_platform_specifics(logger, destination)
        destination = get_output_directory(
            destination,
            config_source.get_final_name(),
            config_source,
            project_context(self.module_project, "module."),
            project_context(self.project, "artifact."),
        )

        if logger.isEnabledFor(logging.DEBUG):
            line_ending = (
                f" lineEndings: {file_set.line_ending}" if file_set.line_ending else ""
            )
            logger.debug(
                "FileSet[%s] dir perms: %s file perms: %s%s",
                destination,
                _octal(archiver.override_directory_mode),
                _octal(archiver.override_file_mode),
                line_ending,
            )
        logger.debug("The archive base directory is %r", archive_base_dir)

        file_set_dir = self.get_file_set_directory(file_set, basedir, archive_base_dir)
        if not file_set_dir.exists():
            logger.debug("skipping file set with missing directory %s", file_set_dir)
            return

        if str(file_set_dir) == os.sep:
            message = (
                f"The assembly descriptor specifies a directory of {os.sep}, "
                "which is the entire file system. Refusing to stage it."
            )
            raise FormattingError(message)

        transformer = get_file_set_transformer(
            config_source, file_set.filtered, file_set.line_ending
        )
        if transformer is None:
            logger.debug("NOT reformatting any files in %s", file_set_dir)

        task = DirectoryStagingTask(file_set_dir, transformer)
        task.directory_mode = mode_to_int(file_set.directory_mode, logger)
        task.file_mode = mode_to_int(file_set.file_mode, logger)
        task.directory_owner = owner_info_to_owner(file_set.directory_owner, logger)
        task.file_owner = owner_info_to_owner(file_set.file_owner, logger)
        task.use_default_excludes = file_set.use_default_excludes
        task.includes = file_set.includes
        task.excludes = file_set.excludes
        task.output_directory = destination
        task.execute(archiver)

    def get_file_set_directory(
        self,
        file_set: FileSetDeclaration,
        basedir: Path,
        archive_base_dir: Path | None,
    ) -> Path:
        """Return the directory a declaration reads its files from.

        A blank ``directory`` means the project base directory. Without an
        archive base directory, relative paths resolve against ``basedir``
        and absolute paths are used as they are. With an archive base
        directory every path, absolute ones included, resolves beneath it.

        Examples
        --------
        >>> declared = FileSetDeclaration(directory="/etc/foo")  # doctest: +SKIP
        >>> FileSetBatchTask().get_file_set_directory(  # doctest: +SKIP
        ...     declared, Path("/project"), Path("/stage")
        ... )
        PosixPath('/stage/etc/foo')
        """
        source = file_set.directory
        if source is None or not source.strip():
            source = str(Path(basedir).absolute())

        if archive_base_dir is None:
            directory = Path(source)
            if not directory.is_absolute():
                directory = Path(basedir) / source
            return directory

        return Path(archive_base_dir) / source.lstrip(_SEPARATORS)


def _check_archive_base_directory(archive_base_dir: Path) -> None:
    if not archive_base_dir.exists():
        message = (
            f"The archive base directory '{archive_base_dir.absolute()}' "
            "does not exist"
        )
        raise StagingConfigurationError(message)
    if not archive_base_dir.is_dir():
        message = (
            f"The archive base directory '{archive_base_dir.absolute()}' "
            "exists, but it is not a directory"
        )
        raise StagingConfigurationError(message)


def _octal(mode: int) -> str:
    return "-1" if mode < 0 else format(mode, "o")
