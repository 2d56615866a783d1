"""Recover each branch's release tags and their channel membership."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import replace

from semrel.core.result import Err, Ok, Result
from semrel.git.repository import GitBackend, GitError
from semrel.output.console import ConsoleProtocol
from semrel.release.model import BranchSpec, Tag
from semrel.release.notes import get_note, note_channels
from semrel.release.semver import clean
from semrel.release.tags import tag_pattern

_PR_REF_RE = re.compile(r"refs/pull/[0-9]+/merge")


def is_pull_request_ref(name: str) -> bool:
    return _PR_REF_RE.search(name) is not None


def branch_tags(
    *,
    repo: GitBackend,
    branch_name: str,
    pattern: re.Pattern[str],
) -> Result[list[Tag], GitError]:
    """Tags reachable from the branch whose label is a valid version.

    A pull request ref may not exist locally, so it is resolved from HEAD.
    """
    ref = "HEAD" if is_pull_request_ref(branch_name) else branch_name
    listed = repo.tags_merged(ref)
    if isinstance(listed, Err):
        return listed

    tags: list[Tag] = []
    for git_tag in listed.value:
        m = pattern.match(git_tag)
        if m is None:
            continue
        version = clean(m.group(1))
        if version is None:
            continue
        note = get_note(repo, git_tag)
        if isinstance(note, Err):
            return note
        tags.append(Tag(git_tag=git_tag, version=version, channels=note_channels(note.value)))
    return Ok(tags)


def resolve_tags(
    *,
    repo: GitBackend,
    tag_format: str,
    branches: Sequence[BranchSpec],
    console: ConsoleProtocol,
) -> Result[list[BranchSpec], GitError]:
    """Attach resolved tags to every branch, preserving input order."""
    pattern = tag_pattern(tag_format)
    out: list[BranchSpec] = []
    for branch in branches:
        tags = branch_tags(repo=repo, branch_name=branch.name, pattern=pattern)
        if isinstance(tags, Err):
            return tags
        console.debug(
            f"found tags for branch {branch.name}: "
            + (", ".join(t.git_tag for t in tags.value) or "(none)")
        )
        out.append(replace(branch, tags=tuple(tags.value)))
    return Ok(out)
