"""Conversions from descriptor symbols to the primitives archivers expect."""

from __future__ import annotations

import logging
import typing as typ

from assembly_archiver import UNSET_MODE, Owner

if typ.TYPE_CHECKING:
    from assembly_model import OwnerInfo

__all__ = ["mode_to_int", "owner_info_to_owner", "verify_mode_sanity"]

LOGGER = logging.getLogger(__name__)


def mode_to_int(mode: str | None, logger: logging.Logger | None = None) -> int:
    """Parse octal permission text, returning ``-1`` when absent or invalid.

    Examples
    --------
    >>> mode_to_int("0755")
    493
    >>> mode_to_int(None)
    -1
    """
    logger = logger or LOGGER
    if mode is None or not mode.strip():
        return UNSET_MODE
    try:
        value = int(mode.strip(), 8)
    except ValueError:
        logger.warning("ignoring mode %r: not an octal number", mode)
        return UNSET_MODE
    if value < 0:
        logger.warning("ignoring mode %r: negative modes are not allowed", mode)
        return UNSET_MODE
    verify_mode_sanity(value, logger)
    return value


def verify_mode_sanity(mode: int, logger: logging.Logger | None = None) -> bool:
    """Warn about permission combinations that rarely make sense.

    Returns ``True`` when nothing unusual was found.
    """
    owner_can_read = mode & 0o400 == 0o400
    owner_can_write = mode & 0o200 == 0o200
    group_can_read = mode & 0o040 == 0o040
    group_can_write = mode & 0o020 == 0o020
    world_can_read = mode & 0o004 == 0o004
    world_can_write = mode & 0o002 == 0o002

    problems: list[str] = []
    if not owner_can_read:
        problems.append("Owner does not have read permission.")
    if not owner_can_write:
        problems.append("Owner does not have write permission.")
    if not owner_can_read and group_can_read:
        problems.append("Group has read permission, but owner does not.")
    if not owner_can_read and world_can_read:
        problems.append("World has read permission, but owner does not.")
    if not owner_can_write and group_can_write:
        problems.append("Group has write permission, but owner does not.")
    if not owner_can_write and world_can_write:
        problems.append("World has write permission, but owner does not.")

    if problems:
        (logger or LOGGER).warning(
            "The mode %s is unusual; the assembly may have unexpected results:\n%s",
            oct(mode),
            "\n".join(f"  - {problem}" for problem in problems),
        )
    return not problems


def owner_info_to_owner(
    info: OwnerInfo | None, logger: logging.Logger | None = None
) -> Owner | None:
    """Convert a descriptor owner into an archiver owner, or ``None``."""
    if info is None:
        return None
    user_name = info.user_name or None
    group_name = info.group_name or None
    if (
        user_name is None
        and group_name is None
        and info.user_id is None
        and info.group_id is None
    ):
        (logger or LOGGER).debug("ignoring owner without user or group: %r", info)
        return None
    return Owner(
        user_name=user_name,
        user_id=info.user_id,
        group_name=group_name,
        group_id=info.group_id,
    )
