"""Typed release configuration loading.

Configuration is read from ``semrel.toml`` / ``.semrel.toml`` or from the
``[tool.semrel]`` table of ``pyproject.toml``:

    [tool.semrel]
    tag_format = "v${version}"
    branches = ["main", { name = "beta", prerelease = true }]
    plugins = ["my_plugins.analyzer:CommitAnalyzer"]
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from semrel.release.model import (
    DEFAULT_FIRST_RELEASE,
    DEFAULT_PRERELEASE_IDENTIFIER_BASE,
    DEFAULT_TAG_FORMAT,
    BranchSpec,
)

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_list, get_str, get_table

__all__ = [
    "CONFIG_FILENAMES",
    "DEFAULT_BRANCHES",
    "ConfigError",
    "PluginSpec",
    "ReleaseOptions",
    "find_config",
    "load_config",
    "load_project_config",
    "parse_branch",
    "parse_options",
    "read_package_version",
]

CONFIG_FILENAMES = ("semrel.toml", ".semrel.toml")

DEFAULT_BRANCHES: tuple[BranchSpec, ...] = (
    BranchSpec(name="[0-9]*.x"),
    BranchSpec(name="[0-9]*.[0-9]*.x"),
    BranchSpec(name="master"),
    BranchSpec(name="main"),
    BranchSpec(name="next"),
    BranchSpec(name="next-major"),
    BranchSpec(name="beta", prerelease=True),
    BranchSpec(name="alpha", prerelease=True),
)


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PluginSpec:
    """A plugin declaration: ``module:attribute`` plus constructor options."""

    path: str
    options: StrDict = field(default_factory=lambda: {})


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Options of one release run."""

    branches: tuple[BranchSpec, ...] = DEFAULT_BRANCHES
    repository_url: str | None = None
    tag_format: str = DEFAULT_TAG_FORMAT
    plugins: tuple[PluginSpec, ...] = ()
    dry_run: bool = False
    no_ci: bool = False
    publish_on_pr: bool = False
    first_release: str = DEFAULT_FIRST_RELEASE
    prerelease_identifier_base: str = DEFAULT_PRERELEASE_IDENTIFIER_BASE
    respect_package_version: bool = False
    verbose: bool = False


def parse_branch(obj: object) -> Result[BranchSpec, str]:
    if isinstance(obj, str):
        if not obj.strip():
            return Err("branch name must not be empty")
        return Ok(BranchSpec(name=obj.strip()))

    table = as_str_dict(obj)
    if table is None:
        return Err(f"invalid branch declaration: {obj!r}")
    name = get_str(table, "name")
    if name is None:
        return Err(f"branch declaration without name: {obj!r}")

    channel = table.get("channel")
    if channel is not None and channel is not False and not isinstance(channel, str):
        return Err(f"branch {name}: channel must be a string or false")
    range_ = table.get("range")
    if range_ is not None and range_ is not False and not isinstance(range_, str):
        return Err(f"branch {name}: range must be a string or false")
    prerelease = table.get("prerelease")
    if prerelease is not None and not isinstance(prerelease, str | bool):
        return Err(f"branch {name}: prerelease must be a string or a boolean")

    return Ok(BranchSpec(name=name, channel=channel, range=range_, prerelease=prerelease))


def _parse_plugin(obj: object) -> Result[PluginSpec, str]:
    if isinstance(obj, str) and obj.strip():
        return Ok(PluginSpec(path=obj.strip()))
    table = as_str_dict(obj)
    if table is None:
        return Err(f"invalid plugin declaration: {obj!r}")
    path = get_str(table, "path")
    if path is None:
        return Err(f"plugin declaration without path: {obj!r}")
    return Ok(PluginSpec(path=path, options=get_table(table, "options") or {}))


def parse_options(data: StrDict) -> Result[ReleaseOptions, str]:
    """Build ReleaseOptions from a decoded TOML table."""
    options = ReleaseOptions()
    branches: list[BranchSpec] = []
    raw_branches = get_list(data, "branches")
    if raw_branches is not None:
        for item in raw_branches:
            branch = parse_branch(item)
            if isinstance(branch, Err):
                return branch
            branches.append(branch.value)

    plugins: list[PluginSpec] = []
    for item in get_list(data, "plugins") or []:
        plugin = _parse_plugin(item)
        if isinstance(plugin, Err):
            return plugin
        plugins.append(plugin.value)

    base = data.get("prerelease_identifier_base")
    if base is not None and (isinstance(base, bool) or not isinstance(base, str | int)):
        return Err("prerelease_identifier_base must be a string or an integer")

    ci = get_bool(data, "ci")
    return Ok(
        ReleaseOptions(
            branches=tuple(branches) if raw_branches is not None else options.branches,
            repository_url=get_str(data, "repository_url"),
            tag_format=get_str(data, "tag_format") or options.tag_format,
            plugins=tuple(plugins),
            dry_run=get_bool(data, "dry_run") or False,
            no_ci=ci is False,
            publish_on_pr=get_bool(data, "publish_on_pr") or False,
            first_release=get_str(data, "first_release") or options.first_release,
            prerelease_identifier_base=str(base) if base is not None else options.prerelease_identifier_base,
            respect_package_version=get_bool(data, "respect_package_version") or False,
            verbose=get_bool(data, "verbose") or False,
        )
    )


def _read_toml(path: Path) -> Result[StrDict, ConfigError]:
    try:
        with path.open("rb") as f:
            data_obj: object = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        return Err(ConfigError(message=f"cannot read {path.name}: {e}", path=path))
    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError(message=f"{path.name} is not a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseOptions, ConfigError]:
    """Load options from a TOML file (``[tool.semrel]`` for pyproject.toml)."""
    data = _read_toml(path)
    if isinstance(data, Err):
        return data

    table: StrDict = data.value
    if path.name == "pyproject.toml":
        table = get_table(get_table(data.value, "tool") or {}, "semrel") or {}

    options = parse_options(table)
    if isinstance(options, Err):
        return Err(ConfigError(message=options.error, path=path))
    return options


def find_config(cwd: Path) -> Path | None:
    for name in CONFIG_FILENAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate
    pyproject = cwd / "pyproject.toml"
    if pyproject.is_file():
        data = _read_toml(pyproject)
        if isinstance(data, Ok) and get_table(get_table(data.value, "tool") or {}, "semrel") is not None:
            return pyproject
    return None


def load_project_config(cwd: Path) -> Result[ReleaseOptions, ConfigError]:
    """Load the project configuration, defaults if there is none."""
    path = find_config(cwd)
    if path is None:
        return Ok(ReleaseOptions())
    return load_config(path)


def read_package_version(cwd: Path) -> str | None:
    """``[project].version`` of the project's pyproject.toml, if any."""
    pyproject = cwd / "pyproject.toml"
    if not pyproject.is_file():
        return None
    data = _read_toml(pyproject)
    if isinstance(data, Err):
        return None
    return get_str(get_table(data.value, "project") or {}, "version")
