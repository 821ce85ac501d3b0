"""Exception hierarchy shared by the assembly staging helpers.

Library code raises these exceptions so callers can distinguish configuration
mistakes from formatting failures and archiver rejections. Only the CLI entry
point converts them into ``SystemExit``.
"""

from __future__ import annotations

__all__ = [
    "ArchiveCreationError",
    "ArchiverError",
    "FormattingError",
    "StagingConfigurationError",
    "StagingError",
]


class StagingError(Exception):
    """Base class for failures raised while staging file sets."""


class ArchiveCreationError(StagingError):
    """Raised when a file set cannot be added to the archive."""


class StagingConfigurationError(ArchiveCreationError):
    """Raised when the staging configuration is invalid."""


class FormattingError(StagingError):
    """Raised when a path template or content transform cannot be applied."""


class ArchiverError(Exception):
    """Raised by archive collaborators that reject a submitted file set."""
