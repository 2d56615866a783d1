"""Expand declared branch patterns into concrete remote branches."""

from __future__ import annotations

import fnmatch
from collections.abc import Sequence
from dataclasses import replace
from string import Template

from semrel.core.result import Err, Ok, Result
from semrel.git.repository import GitBackend, GitError
from semrel.release.model import BranchSpec
from semrel.release.semver import is_maintenance_range


def _concrete(pattern: BranchSpec, name: str) -> BranchSpec:
    """Concrete branch for ``name``; string fields may reference ``${name}``."""

    def render(value: str) -> str:
        return Template(value).safe_substitute(name=name)

    return replace(
        pattern,
        name=name,
        channel=render(pattern.channel) if isinstance(pattern.channel, str) else pattern.channel,
        range=render(pattern.range) if isinstance(pattern.range, str) else pattern.range,
        prerelease=(
            render(pattern.prerelease) if isinstance(pattern.prerelease, str) else pattern.prerelease
        ),
    )


def _claims_maintenance_only(pattern: BranchSpec) -> bool:
    """A ``.x`` glob without a declared range only claims ``N.x``/``N.N.x`` names."""
    return pattern.range is None and pattern.name.endswith(".x") and any(c in pattern.name for c in "*?[")


def _claims(pattern: BranchSpec, name: str) -> bool:
    if not fnmatch.fnmatchcase(name, pattern.name):
        return False
    return not _claims_maintenance_only(pattern) or is_maintenance_range(name)


def match_patterns(pool: Sequence[str], patterns: Sequence[BranchSpec]) -> list[BranchSpec]:
    """Match each pattern, in declaration order, against the unclaimed names.

    A name is claimed by the first pattern matching it. Patterns matching
    nothing contribute nothing.
    """
    available = list(pool)
    out: list[BranchSpec] = []
    for pattern in patterns:
        matched = [n for n in available if _claims(pattern, n)]
        available = [n for n in available if n not in matched]
        out.extend(_concrete(pattern, name) for name in matched)
    return out


def expand_branches(
    *,
    repo: GitBackend,
    repository_url: str,
    ci_branch: str | None,
    publish_on_pr: bool,
    patterns: Sequence[BranchSpec],
) -> Result[list[BranchSpec], GitError]:
    remote = repo.remote_branches(repository_url)
    if isinstance(remote, Err):
        return remote

    pool = list(remote.value)
    # A pull request head usually isn't a remote branch; let a PR run
    # resolve its own policy.
    if publish_on_pr and ci_branch and ci_branch not in pool:
        pool.append(ci_branch)

    return Ok(match_patterns(pool, patterns))
