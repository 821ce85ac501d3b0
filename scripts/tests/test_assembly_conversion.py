"""Tests for mode and owner conversions."""

from __future__ import annotations

import logging

import pytest
from assembly_archiver import Owner
from assembly_conversion import mode_to_int, owner_info_to_owner, verify_mode_sanity
from assembly_model import OwnerInfo


@pytest.mark.parametrize(
    ("mode", "expected"),
    [
        ("0755", 0o755),
        ("644", 0o644),
        (" 0700 ", 0o700),
        (None, -1),
        ("", -1),
        ("   ", -1),
    ],
)
def test_mode_to_int(mode: str | None, expected: int) -> None:
    """Parse octal text and map blanks to the unset sentinel."""
    assert mode_to_int(mode) == expected


def test_mode_to_int_ignores_invalid_text(caplog: pytest.LogCaptureFixture) -> None:
    """Warn and fall back to the unset sentinel for non-octal text."""
    caplog.set_level(logging.WARNING)

    assert mode_to_int("0789") == -1
    assert "not an octal number" in caplog.text


def test_verify_mode_sanity_accepts_common_modes(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Stay silent for conventional permissions."""
    caplog.set_level(logging.WARNING)

    assert verify_mode_sanity(0o644) is True
    assert caplog.records == []


def test_verify_mode_sanity_reports_unusual_modes(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """List every unusual permission in a single warning."""
    caplog.set_level(logging.WARNING)

    assert verify_mode_sanity(0o044) is False

    (record,) = caplog.records
    message = record.getMessage()
    assert "Owner does not have read permission." in message
    assert "Group has read permission, but owner does not." in message
    assert "World has read permission, but owner does not." in message


def test_owner_info_to_owner_converts_fields() -> None:
    """Copy names and ids across."""
    info = OwnerInfo(user_name="app", group_id=50)

    assert owner_info_to_owner(info) == Owner(user_name="app", group_id=50)


@pytest.mark.parametrize("info", [None, OwnerInfo(), OwnerInfo(user_name="")])
def test_owner_info_to_owner_returns_none_for_empty(info: OwnerInfo | None) -> None:
    """Map absent and empty owners to ``None``."""
    assert owner_info_to_owner(info) is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("root", OwnerInfo(user_name="root")),
        ("root:wheel", OwnerInfo(user_name="root", group_name="wheel")),
        ("1000:1000", OwnerInfo(user_id=1000, group_id=1000)),
        (":staff", OwnerInfo(group_name="staff")),
    ],
)
def test_owner_info_parse(text: str, expected: OwnerInfo) -> None:
    """Split ``user:group`` text into names and numeric ids."""
    assert OwnerInfo.parse(text) == expected
