"""The mutable record threaded through every stage of a release run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from semrel.core.config import ReleaseOptions
from semrel.core.errors import SemrelError
from semrel.git.repository import Commit, GitError
from semrel.output.console import ConsoleProtocol
from semrel.platform.ci import CiEnvironment
from semrel.release.model import Branch, LastRelease, NextRelease, PublishedRelease

type RunError = SemrelError | GitError


@dataclass(slots=True)
class Context:
    """State of one release run.

    Exactly one Context exists per run. The pipeline owns it and lends it
    to one plugin step at a time. What each stage writes:
    - branch resolution: ``branches``, ``branch``
    - add-channel: ``last_release``, ``current_release``, ``next_release``,
      ``commits``, ``releases``
    - new release: ``last_release``, ``commits``, then ``next_release``
      field by field (type, version, tag, notes), then ``releases``
    - fail: ``errors``

    Attributes:
        cwd: Working tree of the repository
        env: Environment of git invocations (shared with the git backend)
        options: Options of the run
        console: Output sink
        ci: Detected CI environment
        dry_run: Effective dry-run flag (forced outside CI)
        package_version: Version declared by the project, if any
    """

    cwd: Path
    env: dict[str, str]
    options: ReleaseOptions
    console: ConsoleProtocol
    ci: CiEnvironment
    dry_run: bool = False
    package_version: str | None = None
    repository_url: str = ""
    branches: list[Branch] = field(default_factory=lambda: [])
    branch: Branch | None = None
    commits: list[Commit] = field(default_factory=lambda: [])
    last_release: LastRelease | None = None
    current_release: LastRelease | None = None
    next_release: NextRelease | None = None
    releases: list[PublishedRelease] = field(default_factory=lambda: [])
    errors: tuple[RunError, ...] = ()

    @property
    def ci_branch(self) -> str | None:
        return self.ci.ci_branch

    def require_branch(self) -> Branch:
        if self.branch is None:
            raise AssertionError("release branch is not resolved yet")
        return self.branch


def create_context(
    *,
    cwd: Path,
    env: dict[str, str],
    options: ReleaseOptions,
    console: ConsoleProtocol,
    ci: CiEnvironment,
    package_version: str | None = None,
) -> Context:
    return Context(
        cwd=cwd,
        env=env,
        options=options,
        console=console,
        ci=ci,
        dry_run=options.dry_run,
        package_version=package_version,
    )
