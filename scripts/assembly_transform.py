"""Per-file content transforms applied while archiving filtered file sets."""

from __future__ import annotations

import enum
import logging
import typing as typ

from assembly_errors import FormattingError
from assembly_format import (
    config_source_context,
    final_name_context,
    interpolate,
    project_context,
)

if typ.TYPE_CHECKING:
    from assembly_archiver import StreamTransformer
    from assembly_model import ConfigSource

__all__ = ["LineEnding", "get_file_set_transformer"]

LOGGER = logging.getLogger(__name__)


class LineEnding(enum.Enum):
    """Line ending policies accepted by file set declarations."""

    KEEP = "keep"
    UNIX = "unix"
    LF = "lf"
    DOS = "dos"
    WINDOWS = "windows"
    CRLF = "crlf"

    @classmethod
    def from_name(cls, name: str | None) -> LineEnding | None:
        """Return the policy called ``name``; ``None`` when unset."""
        if name is None or not name.strip():
            return None
        try:
            return cls(name.strip().lower())
        except ValueError as error:
            allowed = ", ".join(member.value for member in cls)
            message = f"unknown line ending {name!r}; expected one of: {allowed}"
            raise FormattingError(message) from error

    @property
    def characters(self) -> bytes | None:
        """Return the terminator written by this policy, ``None`` for keep."""
        if self is LineEnding.KEEP:
            return None
        if self in (LineEnding.UNIX, LineEnding.LF):
            return b"\n"
        return b"\r\n"


def get_file_set_transformer(
    config_source: ConfigSource,
    filtered: bool,  # noqa: FBT001 - mirrors the descriptor flag
    line_ending: str | None,
) -> StreamTransformer | None:
    """Return the transform for a file set, or ``None`` when nothing changes.

    Parameters
    ----------
    config_source : ConfigSource
        Supplies the properties used to filter ``${...}`` expressions and the
        encoding used to decode staged files.
    filtered : bool
        Interpolate expressions found inside staged files.
    line_ending : str | None
        Name of a :class:`LineEnding` policy.

    Raises
    ------
    FormattingError
        Raised when ``line_ending`` names an unknown policy.
    """
    policy = LineEnding.from_name(line_ending)
    terminator = policy.characters if policy is not None else None
    if not filtered and terminator is None:
        return None

    contexts = (
        final_name_context(config_source.get_final_name()),
        project_context(config_source.project, "artifact."),
        config_source_context(config_source),
    )
    encoding = config_source.encoding

    def transform(name: str, data: bytes) -> bytes:
        if filtered:
            try:
                text = data.decode(encoding)
            except UnicodeDecodeError as error:
                message = f"cannot filter {name}: not valid {encoding} text"
                raise FormattingError(message) from error
            text = interpolate(
                text,
                contexts,
                escape_string=config_source.escape_string,
                strict=False,
            )
            data = text.encode(encoding)
        if terminator is not None:
            data = data.replace(b"\r\n", b"\n").replace(b"\r", b"\n")
            data = data.replace(b"\n", terminator)
        return data

    LOGGER.debug(
        "transforming files with filtering=%s line ending=%s",
        filtered,
        policy.value if policy is not None else None,
    )
    return transform
