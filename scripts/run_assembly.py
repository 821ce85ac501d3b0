#!/usr/bin/env -S uv run python
"""Build a tarball from a TOML assembly descriptor.

The command stages every file set declared in the descriptor and writes the
resulting archive. Options may also be supplied through ``ASSEMBLY_*``
environment variables.

Examples
--------
Assemble the distribution described by ``assembly.toml``::

    python scripts/run_assembly.py assembly.toml --output dist/demo.tar.gz

Stage from an alternate root and override a property::

    ASSEMBLY_ARCHIVE_BASE_DIR=/tmp/stage \
        python scripts/run_assembly.py assembly.toml -o demo.tar -D env=prod
"""

# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "cyclopts>=2.9",
#     "pathspec",
#     "plumbum",
#     "tomlkit",
# ]
# ///
from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import cyclopts
from assembly import StagingError, assemble
from cyclopts import App, Parameter

LOGGER = logging.getLogger(__name__)

app = App(config=cyclopts.config.Env("ASSEMBLY_", command=False))


def parse_properties(definitions: typ.Sequence[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` definitions into a mapping.

    Examples
    --------
    >>> parse_properties(["env=prod", "flag"])
    {'env': 'prod', 'flag': 'true'}
    """
    properties: dict[str, str] = {}
    for definition in definitions:
        key, separator, value = definition.partition("=")
        key = key.strip()
        if not key:
            message = f"invalid property definition {definition!r}; expected KEY=VALUE"
            raise SystemExit(message)
        properties[key] = value if separator else "true"
    return properties


@app.default
def main(
    descriptor: Path,
    *,
    output: typ.Annotated[Path, Parameter(name=["--output", "-o"])],
    archive_base_dir: Path | None = None,
    final_name: str | None = None,
    define: typ.Annotated[
        tuple[str, ...], Parameter(name=["--define", "-D"])
    ] = (),
    verbose: bool = False,
) -> None:
    """Assemble ``descriptor`` into ``output``.

    Parameters
    ----------
    descriptor : Path
        TOML assembly descriptor.
    output : Path
        Archive to write; ``.tar``, ``.tar.gz``/``.tgz``, ``.tar.bz2`` or
        ``.tar.xz``.
    archive_base_dir : Path | None, optional
        Alternate root beneath which every file set directory is resolved.
    final_name : str | None, optional
        Overrides the descriptor's final name.
    define : tuple[str, ...], optional
        ``KEY=VALUE`` interpolation properties.
    verbose : bool, optional
        Emit debug logging.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        archive = assemble(
            descriptor,
            output,
            archive_base_dir=archive_base_dir,
            final_name=final_name,
            properties=parse_properties(define),
        )
    except StagingError as error:
        LOGGER.exception("assembly of %s failed", descriptor)
        raise SystemExit(str(error)) from error
    print(f"wrote {archive}")


if __name__ == "__main__":
    app()
