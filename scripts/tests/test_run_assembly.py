"""Workflow and CLI tests for building archives from descriptors."""

from __future__ import annotations

import tarfile
import typing as typ

import pytest
from assembly import assemble
from assembly_errors import FormattingError, StagingConfigurationError

if typ.TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType


@pytest.fixture
def descriptor(tmp_path: Path) -> Path:
    """Provision a project tree with a descriptor staging two file sets."""
    project = tmp_path / "project"
    (project / "src" / "config").mkdir(parents=True)
    (project / "bin").mkdir()
    (project / "src" / "config" / "app.properties").write_text(
        "greeting=${greeting}\r\nescaped=\\${greeting}\r\n", encoding="utf-8"
    )
    (project / "src" / "config" / "local.properties").write_text(
        "secret=1\n", encoding="utf-8"
    )
    (project / "bin" / "run.sh").write_text("#!/bin/sh\n", encoding="utf-8")
    path = project / "assembly.toml"
    path.write_text(
        "\n".join(
            (
                "[project]",
                'group-id = "org.example"',
                'artifact-id = "demo"',
                'version = "2.0"',
                "",
                "[project.properties]",
                'greeting = "hello"',
                "",
                "[[file-sets]]",
                'directory = "src/config"',
                'output-directory = "${finalName}/conf"',
                'excludes = ["**/local.properties"]',
                "filtered = true",
                'line-ending = "unix"',
                "",
                "[[file-sets]]",
                'directory = "bin"',
                'output-directory = "${finalName}/bin"',
                'file-mode = "0755"',
                'file-owner = "root:root"',
                "",
                "[[file-sets]]",
                'directory = "missing"',
            )
        ),
        encoding="utf-8",
    )
    return path


def test_assemble_writes_archive(descriptor: Path, tmp_path: Path) -> None:
    """Stage every file set and write a filtered, permissioned tarball."""
    output = assemble(descriptor, tmp_path / "dist" / "demo.tar.gz")

    with tarfile.open(output) as tar:
        names = tar.getnames()
        config = tar.extractfile("demo-2.0/conf/app.properties")
        assert config is not None
        assert config.read() == b"greeting=hello\nescaped=${greeting}\n"
        script = tar.getmember("demo-2.0/bin/run.sh")
        assert script.mode == 0o755
        assert script.uname == "root"
        assert script.gname == "root"
    assert "demo-2.0/conf/local.properties" not in names


def test_assemble_honours_overrides(descriptor: Path, tmp_path: Path) -> None:
    """Apply the final name override and command-line properties."""
    output = assemble(
        descriptor,
        tmp_path / "demo.tar",
        final_name="custom",
        properties={"greeting": "bonjour"},
    )

    with tarfile.open(output) as tar:
        config = tar.extractfile("custom/conf/app.properties")
        assert config is not None
        assert config.read().startswith(b"greeting=bonjour\n")


def test_assemble_rejects_missing_archive_base_dir(
    descriptor: Path, tmp_path: Path
) -> None:
    """Fail before staging when the archive base directory is missing."""
    with pytest.raises(StagingConfigurationError, match="does not exist"):
        assemble(
            descriptor,
            tmp_path / "demo.tar",
            archive_base_dir=tmp_path / "nowhere",
        )

    assert not (tmp_path / "demo.tar").exists()


def test_assemble_resolves_beneath_archive_base_dir(
    descriptor: Path, tmp_path: Path
) -> None:
    """Read file sets from the archive base directory when configured."""
    stage = tmp_path / "stage"
    (stage / "bin").mkdir(parents=True)
    (stage / "bin" / "other.sh").write_text("echo\n", encoding="utf-8")

    output = assemble(descriptor, tmp_path / "demo.tar", archive_base_dir=stage)

    with tarfile.open(output) as tar:
        assert tar.getnames() == ["demo-2.0", "demo-2.0/bin", "demo-2.0/bin/other.sh"]


def test_parse_properties(run_assembly_module: ModuleType) -> None:
    """Split definitions and default bare keys to ``true``."""
    assert run_assembly_module.parse_properties(["a=1", "b", "c=x=y"]) == {
        "a": "1",
        "b": "true",
        "c": "x=y",
    }


def test_parse_properties_rejects_empty_keys(run_assembly_module: ModuleType) -> None:
    """Abort on definitions without a key."""
    with pytest.raises(SystemExit, match="invalid property definition"):
        run_assembly_module.parse_properties(["=value"])


def test_main_forwards_arguments(
    monkeypatch: pytest.MonkeyPatch,
    run_assembly_module: ModuleType,
    tmp_path: Path,
) -> None:
    """Confirm the CLI passes its options through to ``assemble``."""
    captured: dict[str, object] = {}

    def fake_assemble(descriptor: Path, output: Path, **kwargs: object) -> Path:
        captured.update(descriptor=descriptor, output=output, **kwargs)
        return output

    monkeypatch.setattr(run_assembly_module, "assemble", fake_assemble)

    run_assembly_module.app(
        [
            str(tmp_path / "assembly.toml"),
            "--output",
            str(tmp_path / "out.tar"),
            "--final-name",
            "dist",
            "-D",
            "env=prod",
        ]
    )

    assert captured == {
        "descriptor": tmp_path / "assembly.toml",
        "output": tmp_path / "out.tar",
        "archive_base_dir": None,
        "final_name": "dist",
        "properties": {"env": "prod"},
    }


def test_main_honours_environment(
    monkeypatch: pytest.MonkeyPatch,
    run_assembly_module: ModuleType,
    tmp_path: Path,
) -> None:
    """Read the archive base directory from the environment."""
    observed: list[object] = []

    def fake_assemble(_descriptor: Path, output: Path, **kwargs: object) -> Path:
        observed.append(kwargs["archive_base_dir"])
        return output

    monkeypatch.setattr(run_assembly_module, "assemble", fake_assemble)
    monkeypatch.setenv("ASSEMBLY_ARCHIVE_BASE_DIR", str(tmp_path))

    run_assembly_module.app(["assembly.toml", "--output", "out.tar"])

    assert observed == [tmp_path]


def test_main_converts_staging_errors(
    monkeypatch: pytest.MonkeyPatch,
    run_assembly_module: ModuleType,
) -> None:
    """Surface staging failures as ``SystemExit`` with the error message."""

    def fake_assemble(*_args: object, **_kwargs: object) -> Path:
        message = "boom"
        raise FormattingError(message)

    monkeypatch.setattr(run_assembly_module, "assemble", fake_assemble)

    with pytest.raises(SystemExit, match="boom"):
        run_assembly_module.app(["assembly.toml", "--output", "out.tar"])
