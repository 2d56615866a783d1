from __future__ import annotations

import dataclasses
import os
from pathlib import Path

import typer

from semrel.cli.context import build_context
from semrel.core.config import PluginSpec, ReleaseOptions, parse_branch
from semrel.core.errors import ErrorCode, exit_code_for
from semrel.core.result import Err
from semrel.git.repository import Repository
from semrel.output.console import ConsoleProtocol, Style
from semrel.platform.ci import detect_ci
from semrel.release.context import create_context
from semrel.release.model import BranchSpec, RunResult
from semrel.release.pipeline import run_release
from semrel.release.plugins import PluginRegistry


def release(
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Compute the release without publishing it."),
    no_ci: bool = typer.Option(False, "--no-ci", help="Publish even when not running on CI."),
    branches: list[str] | None = typer.Option(
        None, "--branches", "-b", help="Branch to release from (repeatable, globs allowed)."
    ),
    repository_url: str | None = typer.Option(None, "--repository-url", "-r", help="Git remote to push to."),
    tag_format: str | None = typer.Option(None, "--tag-format", "-t", help="Tag template, e.g. v${version}."),
    plugins: list[str] | None = typer.Option(
        None, "--plugin", "-p", help="Plugin as package.module:attribute (repeatable)."
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Configuration file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output."),
) -> None:
    """Publish a release from the current branch."""
    ctx = build_context(config_path=config, verbose=verbose)
    console = ctx.console

    options = _apply_overrides(
        ctx.options,
        console=console,
        dry_run=dry_run,
        no_ci=no_ci,
        branches=branches,
        repository_url=repository_url,
        tag_format=tag_format,
        plugins=plugins,
    )

    registry = PluginRegistry.from_declarations(options.plugins)
    if isinstance(registry, Err):
        for error in registry.error:
            console.error(f"{error.code} {error.message}")
            if error.details:
                console.print(error.details, Style.DIM)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    if len(registry.value) == 0:
        console.warning("No plugin configured: nothing analyzes commits, so no release will be made.")

    env = dict(os.environ)
    repo = Repository(ctx.cwd, env)
    ci = detect_ci(env)
    if ci.branch is None:
        ci = dataclasses.replace(ci, branch=repo.current_branch())

    context = create_context(
        cwd=ctx.cwd,
        env=env,
        options=options,
        console=console,
        ci=ci,
        package_version=ctx.package_version,
    )
    result = run_release(context=context, plugins=registry.value, repo=repo)
    if isinstance(result, Err):
        raise typer.Exit(code=int(exit_code_for(result.error)))

    _print_result(console, result.value)


def _apply_overrides(
    options: ReleaseOptions,
    *,
    console: ConsoleProtocol,
    dry_run: bool,
    no_ci: bool,
    branches: list[str] | None,
    repository_url: str | None,
    tag_format: str | None,
    plugins: list[str] | None,
) -> ReleaseOptions:
    changes: dict[str, object] = {}
    if dry_run:
        changes["dry_run"] = True
    if no_ci:
        changes["no_ci"] = True
    if repository_url:
        changes["repository_url"] = repository_url
    if tag_format:
        changes["tag_format"] = tag_format
    if plugins:
        changes["plugins"] = tuple(PluginSpec(path=p) for p in plugins)
    if branches:
        specs: list[BranchSpec] = []
        for name in branches:
            parsed = parse_branch(name)
            if isinstance(parsed, Err):
                console.error(f"invalid --branches value: {parsed.error}")
                raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
            specs.append(parsed.value)
        changes["branches"] = tuple(specs)
    return dataclasses.replace(options, **changes)  # pyright: ignore[reportArgumentType]


def _print_result(console: ConsoleProtocol, result: RunResult | None) -> None:
    if result is None:
        console.print("no release published", Style.DIM)
        return
    if result.next_release is not None:
        console.print(f"version: {result.next_release.version}", Style.DIM)
        console.print(f"tag: {result.next_release.git_tag}", Style.DIM)
    for published in result.releases:
        where = published.url or published.channel or "default channel"
        console.print(f"{published.plugin_name}: {published.version} ({where})", Style.DIM)
