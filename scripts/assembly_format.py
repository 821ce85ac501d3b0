"""Path template helpers used to compute archive destinations.

Destination prefixes in assembly descriptors may reference ``${...}``
expressions such as ``${finalName}`` or ``${module.artifactId}``. The helpers
here resolve those expressions against a chain of lookup contexts and tidy the
result into an archive-relative path.

Example
-------
>>> fix_relative_refs("/foo/../bar.txt")
'/bar.txt'
"""

from __future__ import annotations

import logging
import os
import re
import typing as typ

from assembly_errors import FormattingError
from plumbum import local

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from assembly_model import ConfigSource, Project

__all__ = [
    "Context",
    "config_source_context",
    "final_name_context",
    "fix_relative_refs",
    "get_output_directory",
    "interpolate",
    "project_context",
    "warn_for_platform_specifics",
]

LOGGER = logging.getLogger(__name__)

Context = typ.Mapping[str, str]

_SEPARATORS: typ.Final[tuple[str, ...]] = ("/", "\\")
_EXPRESSION = re.compile(r"\$\{([^${}]+)\}")
_DRIVE_LETTER = re.compile(r"^[A-Za-z]:")


def fix_relative_refs(value: str) -> str:
    """Collapse ``.`` and ``..`` segments without consulting the filesystem.

    A ``..`` segment removes itself and the segment before it; a ``..`` with
    nothing before it is dropped. A trailing separator present on the input
    is preserved.
    """
    final_separator = None
    for separator in _SEPARATORS:
        if value.endswith(separator):
            final_separator = separator
        if f".{separator}" not in value:
            continue
        parts = value.split(separator)
        while parts and not parts[-1]:
            parts.pop()
        kept: list[str] = []
        for part in parts:
            if part == ".":
                continue
            if part == "..":
                if kept:
                    kept.pop()
                continue
            kept.append(part)
        value = separator.join(kept)

    if final_separator is not None and value and not value.endswith(final_separator):
        value = f"{value}{final_separator}"
    return value


def interpolate(
    template: str,
    contexts: cabc.Sequence[Context],
    *,
    escape_string: str | None = None,
    strict: bool = True,
) -> str:
    """Replace ``${expr}`` tokens using the first context that defines them.

    Parameters
    ----------
    template : str
        Text containing zero or more ``${...}`` expressions.
    contexts : Sequence[Mapping[str, str]]
        Lookup tables consulted in order.
    escape_string : str | None, optional
        Prefix that marks an expression as literal, e.g. ``\\${name}``. The
        prefix is removed and the expression left untouched.
    strict : bool, optional
        Reject text containing an unterminated ``${``. File contents are
        interpolated with ``strict=False`` so shell constructs such as
        ``${A:-${B}}`` pass through.

    Returns
    -------
    str
        The interpolated text. Unknown expressions are left verbatim.

    Raises
    ------
    FormattingError
        Raised for cyclic references, and for unterminated expressions when
        ``strict`` is set.
    """
    return _interpolate(template, contexts, escape_string, (), strict=strict)


def _interpolate(
    template: str,
    contexts: cabc.Sequence[Context],
    escape_string: str | None,
    resolving: tuple[str, ...],
    *,
    strict: bool,
) -> str:
    if strict and "${" in _EXPRESSION.sub("", template):
        message = f"unterminated expression in {template!r}"
        raise FormattingError(message)

    pattern = _EXPRESSION
    if escape_string:
        pattern = re.compile(
            f"{re.escape(escape_string)}(\\$\\{{[^${{}}]+\\}})|{_EXPRESSION.pattern}"
        )

    def _replace(match: re.Match[str]) -> str:
        if escape_string and match.group(1) is not None:
            return match.group(1)
        expression = match.group(match.lastindex or 1).strip()
        if expression in resolving:
            chain = " -> ".join((*resolving, expression))
            message = f"cyclic reference while interpolating {template!r}: {chain}"
            raise FormattingError(message)
        value = _lookup(expression, contexts)
        if value is None:
            return match.group(0)
        return _interpolate(
            value, contexts, escape_string, (*resolving, expression), strict=strict
        )

    return pattern.sub(_replace, template)


def _lookup(expression: str, contexts: cabc.Sequence[Context]) -> str | None:
    for context in contexts:
        value = context.get(expression)
        if value is not None:
            return str(value)
    return None


def final_name_context(final_name: str | None) -> Context:
    """Expose the assembly's final name as ``finalName``."""
    if final_name is None:
        return {}
    return {"finalName": final_name, "build.finalName": final_name}


def project_context(project: Project | None, prefix: str) -> Context:
    """Expose ``project`` metadata under ``prefix`` (e.g. ``"module."``)."""
    if project is None:
        return {}
    values: dict[str, str] = {
        "groupId": project.group_id,
        "artifactId": project.artifact_id,
        "version": project.version,
        "basedir": str(project.basedir),
    }
    if project.name is not None:
        values["name"] = project.name
    if project.build_final_name is not None:
        values["build.finalName"] = project.build_final_name
    if project.build_directory is not None:
        values["build.directory"] = str(project.build_directory)
    for key, value in project.properties.items():
        values[f"properties.{key}"] = value
    return {f"{prefix}{key}": value for key, value in values.items()}


def config_source_context(config_source: ConfigSource) -> Context:
    """Merge command-line, environment and project properties.

    Command-line properties win over ``env.*`` values, which win over the
    project's own properties and ``project.*`` metadata.
    """
    merged: dict[str, str] = {}
    merged.update(project_context(config_source.project, "project."))
    merged.update(config_source.project.properties)
    merged.update({f"env.{key}": value for key, value in local.env.items()})
    merged.update(config_source.properties)
    return merged


def get_output_directory(
    output: str | None,
    final_name: str | None,
    config_source: ConfigSource,
    module_context: Context,
    artifact_context: Context,
) -> str:
    """Interpolate a destination prefix and make it archive-relative.

    Examples
    --------
    >>> get_output_directory("/${finalName}/bin", "demo-1.0", source, {}, {})  # doctest: +SKIP
    'demo-1.0/bin'
    """
    contexts = (
        final_name_context(final_name),
        module_context,
        artifact_context,
        config_source_context(config_source),
    )
    value = interpolate(output or "", contexts)
    value = value.replace("//", "/").replace("\\\\", "\\")
    if value.startswith(_SEPARATORS):
        value = value[1:]
    return fix_relative_refs(value)


def warn_for_platform_specifics(
    logger: logging.Logger | None, destination: str | None
) -> None:
    """Log a warning when ``destination`` only makes sense on one platform."""
    if not destination:
        return
    logger = logger or LOGGER
    if os.name == "nt":
        if destination.startswith("/"):
            logger.warning(
                "The assembly output directory %r looks like an absolute Unix "
                "path, which is not portable to Windows",
                destination,
            )
        return
    if destination.startswith("/"):
        logger.warning(
            "The assembly output directory %r is root-relative; archive paths "
            "are always relative to the archive root",
            destination,
        )
    if _DRIVE_LETTER.match(destination):
        logger.warning(
            "The assembly output directory %r looks like a Windows drive path, "
            "which is not portable",
            destination,
        )
    if "\\" in destination:
        logger.warning(
            "The assembly output directory %r uses Windows path separators, "
            "which are not portable",
            destination,
        )
