"""Facade tying descriptors, staging tasks and the tar archiver together.

Callers that only want a tarball from a descriptor should use
:func:`assemble`. The lower-level pieces are re-exported for callers that
supply their own archive collaborator.
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from add_directory_task import DirectoryStagingTask
from add_file_sets_task import FileSetBatchTask
from assembly_archiver import ArchiverProtocol, FileSetDescriptor, Owner
from assembly_descriptor import AssemblyDescriptor, load_descriptor
from assembly_errors import (
    ArchiveCreationError,
    ArchiverError,
    FormattingError,
    StagingConfigurationError,
    StagingError,
)
from assembly_model import ConfigSource, FileSetDeclaration, OwnerInfo, Project
from assembly_tar import TarArchiver

__all__ = [
    "ArchiveCreationError",
    "ArchiverError",
    "ArchiverProtocol",
    "AssemblyDescriptor",
    "ConfigSource",
    "DirectoryStagingTask",
    "FileSetBatchTask",
    "FileSetDeclaration",
    "FileSetDescriptor",
    "FormattingError",
    "Owner",
    "OwnerInfo",
    "Project",
    "StagingConfigurationError",
    "StagingError",
    "TarArchiver",
    "assemble",
    "load_descriptor",
]

LOGGER = logging.getLogger(__name__)


def assemble(
    descriptor: Path,
    output: Path,
    *,
    archive_base_dir: Path | None = None,
    final_name: str | None = None,
    properties: typ.Mapping[str, str] | None = None,
) -> Path:
    """Stage every file set of ``descriptor`` and write the tarball ``output``.

    Parameters
    ----------
    descriptor : Path
        TOML assembly descriptor, see :mod:`assembly_descriptor`.
    output : Path
        Tarball to create; the suffix selects the compression.
    archive_base_dir : Path | None, optional
        Alternate root that every file set directory resolves beneath.
    final_name : str | None, optional
        Overrides the descriptor's ``final-name``.
    properties : Mapping[str, str] | None, optional
        Extra interpolation properties; they win over project properties.

    Returns
    -------
    Path
        The written archive.
    """
    loaded = load_descriptor(descriptor)
    config_source = ConfigSource(
        project=loaded.project,
        final_name=final_name or loaded.final_name,
        archive_base_directory=archive_base_dir,
        properties=dict(properties or {}),
    )
    archiver = TarArchiver()
    FileSetBatchTask.from_iterable(loaded.file_sets).execute(archiver, config_source)
    LOGGER.info(
        "staged %d entries from %d file sets",
        len(archiver.entry_names),
        len(loaded.file_sets),
    )
    try:
        return archiver.create_archive(output)
    except ArchiverError as error:
        message = f"Error creating archive {output}: {error}"
        raise ArchiveCreationError(message) from error
