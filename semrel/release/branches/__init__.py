"""Branch resolution: expand, fetch, resolve tags, classify and validate.

Usage:
    result = get_branches(
        repo=repo,
        repository_url=url,
        ci_branch="main",
        options=options,
        package_version=None,
        console=console,
    )
"""

from __future__ import annotations

from semrel.core.config import ReleaseOptions
from semrel.core.errors import ConfigurationError
from semrel.core.result import Err, Ok, Result
from semrel.git.repository import GitBackend, GitError
from semrel.output.console import ConsoleProtocol
from semrel.release.branches.definitions import (
    partition,
    validate_maintenance,
    validate_names,
    validate_prerelease,
    validate_release,
)
from semrel.release.branches.expand import expand_branches
from semrel.release.branches.normalize import (
    normalize_maintenance,
    normalize_prerelease,
    normalize_release,
)
from semrel.release.branches.resolve import is_pull_request_ref, resolve_tags
from semrel.release.model import Branch

__all__ = ["get_branches"]


def get_branches(
    *,
    repo: GitBackend,
    repository_url: str,
    ci_branch: str | None,
    options: ReleaseOptions,
    package_version: str | None,
    console: ConsoleProtocol,
) -> Result[list[Branch], tuple[ConfigurationError | GitError, ...]]:
    """Resolve the configured branches that exist on the remote.

    Returns maintenance branches first, then release, then prerelease.
    Every configuration problem is reported at once.
    """
    expanded = expand_branches(
        repo=repo,
        repository_url=repository_url,
        ci_branch=ci_branch,
        publish_on_pr=options.publish_on_pr,
        patterns=options.branches,
    )
    if isinstance(expanded, Err):
        return Err((expanded.error,))

    for spec in expanded.value:
        if is_pull_request_ref(spec.name):
            continue
        fetched = repo.fetch(repository_url, spec.name, ci_branch)
        if isinstance(fetched, Err):
            return Err((fetched.error,))
    notes = repo.fetch_notes(repository_url)
    if isinstance(notes, Err):
        return Err((notes.error,))

    resolved = resolve_tags(
        repo=repo,
        tag_format=options.tag_format,
        branches=expanded.value,
        console=console,
    )
    if isinstance(resolved, Err):
        return Err((resolved.error,))

    first_release = options.first_release
    if options.respect_package_version and package_version:
        first_release = package_version

    maintenance, release, prerelease = partition(resolved.value)
    errors: list[ConfigurationError] = [
        *validate_maintenance(maintenance),
        *validate_release(release),
        *validate_prerelease(
            prerelease,
            first_release=first_release,
            prerelease_identifier_base=options.prerelease_identifier_base,
        ),
        *validate_names(resolved.value),
    ]
    for spec in resolved.value:
        if not is_pull_request_ref(spec.name) and not repo.check_ref_format(f"refs/heads/{spec.name}"):
            errors.append(
                ConfigurationError(
                    code="EINVALIDBRANCHNAME",
                    message=f"The branch name {spec.name!r} is not a valid git reference.",
                    branches=(spec.name,),
                )
            )
    if errors:
        return Err(tuple(errors))

    return Ok(
        [
            *normalize_maintenance(maintenance, release),
            *normalize_release(release),
            *normalize_prerelease(prerelease),
        ]
    )
