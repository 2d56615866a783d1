from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from semrel.core.config import ReleaseOptions, load_config, load_project_config, read_package_version
from semrel.core.errors import ErrorCode
from semrel.core.result import Err
from semrel.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    options: ReleaseOptions
    package_version: str | None
    console: ConsoleProtocol


def build_context(*, config_path: Path | None = None, verbose: bool = False) -> CLIContext:
    cwd = Path.cwd()
    options_result = load_config(config_path) if config_path is not None else load_project_config(cwd)
    if isinstance(options_result, Err):
        where = f" ({options_result.error.path})" if options_result.error.path else ""
        typer.echo(f"error: {options_result.error.message}{where}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(
        cwd=cwd,
        options=options_result.value,
        package_version=read_package_version(cwd),
        console=RichConsole(verbose=verbose or options_result.value.verbose),
    )
