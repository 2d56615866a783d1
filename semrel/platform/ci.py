"""CI environment detection.

Only what the release pipeline needs is exposed: whether we run on CI,
the branch that triggered the run, and the pull request head when the run
was triggered by one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

__all__ = ["CiEnvironment", "detect_ci"]


@dataclass(frozen=True, slots=True)
class CiEnvironment:
    """Detected CI environment.

    Attributes:
        is_ci: True when running under a recognized CI service
        service: Service identifier ("github", "gitlab", "generic") or None
        branch: Branch the run was triggered on (PR target for pull requests)
        pr_branch: Pull request head ref, None outside pull requests
        is_pr: True when the run was triggered by a pull request
    """

    is_ci: bool
    service: str | None = None
    branch: str | None = None
    pr_branch: str | None = None
    is_pr: bool = False

    @property
    def ci_branch(self) -> str | None:
        """Branch whose release policy applies to this run."""
        return self.pr_branch if self.is_pr else self.branch


def _strip_heads(ref: str | None) -> str | None:
    if not ref:
        return None
    return ref.removeprefix("refs/heads/")


def _detect_github(env: Mapping[str, str]) -> CiEnvironment:
    event = env.get("GITHUB_EVENT_NAME", "")
    is_pr = event in {"pull_request", "pull_request_target"}
    if is_pr:
        # GITHUB_REF is refs/pull/<n>/merge for pull requests.
        return CiEnvironment(
            is_ci=True,
            service="github",
            branch=env.get("GITHUB_BASE_REF") or None,
            pr_branch=_strip_heads(env.get("GITHUB_REF")),
            is_pr=True,
        )
    return CiEnvironment(
        is_ci=True,
        service="github",
        branch=env.get("GITHUB_REF_NAME") or _strip_heads(env.get("GITHUB_REF")),
    )


def _detect_gitlab(env: Mapping[str, str]) -> CiEnvironment:
    if env.get("CI_MERGE_REQUEST_ID"):
        return CiEnvironment(
            is_ci=True,
            service="gitlab",
            branch=env.get("CI_MERGE_REQUEST_TARGET_BRANCH_NAME") or None,
            pr_branch=env.get("CI_MERGE_REQUEST_SOURCE_BRANCH_NAME") or None,
            is_pr=True,
        )
    return CiEnvironment(is_ci=True, service="gitlab", branch=env.get("CI_COMMIT_REF_NAME") or None)


def detect_ci(env: Mapping[str, str]) -> CiEnvironment:
    """Detect the CI service from environment variables.

    The branch is None when the service does not expose it; callers fall
    back to the branch checked out in the working tree.
    """
    if env.get("GITHUB_ACTIONS") == "true":
        return _detect_github(env)
    if env.get("GITLAB_CI") == "true":
        return _detect_gitlab(env)
    if env.get("CI", "").lower() in {"true", "1"}:
        return CiEnvironment(is_ci=True, service="generic")
    return CiEnvironment(is_ci=False)
